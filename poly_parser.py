"""
poly_parser.py

Recursive-descent parser for polynomial expressions such as

    39x^2 + 5y + 2*x - 5 + (x^2 + 1)^6 + 4x*5y + xyz

Grammar (whitespace is allowed between any two tokens):

    expression := term ( add_term | sub_term )*
    add_term   := "+" term
    sub_term   := "-" term
    term       := product | cfactor | factor | constant
    product    := element ( "*"? element )+        element := cfactor | factor
    cfactor    := constant "*"? factor
    factor     := parenth | varpow
    parenth    := "(" expression ")" ( "^" exponent )?
    varpow     := variable ( "^" exponent )?
    variable   := a single ASCII letter
    constant   := [0-9]+
    exponent   := [0-9]+

Variables are single letters, so `xyz` is the product x*y*z. A cfactor node
is only produced when a coefficient is written; an element without one
appears as a bare factor.

The parser is purely syntactic: literals are kept as text and converted to
integers by the compiler.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from errors import ParseError

# ----------------------------
# Parse tree
# ----------------------------

NODE_KINDS = (
    "expression", "add_term", "sub_term", "term", "product", "cfactor",
    "factor", "varpow", "parenth", "variable", "constant", "exponent",
)


@dataclass(frozen=True)
class ParseNode:
    kind: str
    text: str  # exact source slice matched by this node
    start: int
    end: int
    children: Tuple["ParseNode", ...] = ()

    def walk(self) -> Iterator["ParseNode"]:
        yield self
        for c in self.children:
            yield from c.walk()

    def find_all(self, kind: str) -> List["ParseNode"]:
        return [n for n in self.walk() if n.kind == kind]

    def pretty(self, indent: int = 0) -> str:
        lines = [f"{'  ' * indent}{self.kind}: {self.text}"]
        for c in self.children:
            lines.append(c.pretty(indent + 1))
        return "\n".join(lines)


# ----------------------------
# Lexical pieces
# ----------------------------

RE_WS = re.compile(r"\s*")
RE_NUMBER = re.compile(r"[0-9]+")
RE_VARIABLE = re.compile(r"[A-Za-z]")


class PolyParser:
    """
    Parser for polynomial source text. One instance can parse many inputs,
    but is not safe to share between threads.
    """

    def __init__(self):
        self._text = ""
        self._pos = 0

    def parse_file(self, path: Union[str, Path]) -> ParseNode:
        p = Path(path)
        return self.parse_text(p.read_text(encoding="utf-8"))

    def parse_text(self, text: str) -> ParseNode:
        """
        Parse the whole text into an `expression` node.
        """
        self._text = text
        self._pos = 0
        self._skip_ws()
        if self._pos >= len(text):
            raise self._error("empty expression")
        try:
            root = self._expression()
        except RecursionError:
            raise self._error("expression nested too deeply") from None
        self._skip_ws()
        if self._pos < len(text):
            raise self._error(f"unexpected '{text[self._pos]}'")
        return root

    # ----------------------------
    # Helpers
    # ----------------------------

    def _error(self, message: str, position: Optional[int] = None) -> ParseError:
        pos = self._pos if position is None else position
        line = self._text.count("\n", 0, pos) + 1
        column = pos - (self._text.rfind("\n", 0, pos) + 1) + 1
        return ParseError(message, pos, line=line, column=column)

    def _skip_ws(self) -> None:
        self._pos = RE_WS.match(self._text, self._pos).end()

    def _accept(self, token: str) -> bool:
        self._skip_ws()
        if self._text.startswith(token, self._pos):
            self._pos += len(token)
            return True
        return False

    def _node(self, kind: str, start: int, children) -> ParseNode:
        return ParseNode(kind, self._text[start:self._pos], start, self._pos, tuple(children))

    # ----------------------------
    # Rules
    # ----------------------------

    def _expression(self) -> ParseNode:
        self._skip_ws()
        start = self._pos
        children = [self._term()]
        while True:
            save = self._pos
            self._skip_ws()
            op_start = self._pos
            if self._accept("+"):
                kind = "add_term"
            elif self._accept("-"):
                kind = "sub_term"
            else:
                self._pos = save
                break
            term = self._term()
            children.append(self._node(kind, op_start, [term]))
        return self._node("expression", start, children)

    def _term(self) -> ParseNode:
        self._skip_ws()
        start = self._pos
        elements = self._elements()
        if len(elements) >= 2:
            child = self._node("product", start, elements)
        elif elements:
            child = elements[0]
        else:
            child = self._constant()
            if child is None:
                raise self._error("expected a term")
        return self._node("term", start, [child])

    def _elements(self) -> List[ParseNode]:
        first = self._element()
        if first is None:
            return []
        elements = [first]
        while True:
            save = self._pos
            explicit = self._accept("*")
            element = self._element()
            if element is None:
                if explicit:
                    raise self._error("expected a factor after '*'")
                self._pos = save
                break
            elements.append(element)
        return elements

    def _element(self) -> Optional[ParseNode]:
        save = self._pos
        self._skip_ws()
        start = self._pos
        coefficient = self._constant()
        if coefficient is None:
            return self._factor()
        self._accept("*")
        factor = self._factor()
        if factor is None:
            # a bare constant, not a coefficient
            self._pos = save
            return None
        return self._node("cfactor", start, [coefficient, factor])

    def _factor(self) -> Optional[ParseNode]:
        save = self._pos
        self._skip_ws()
        start = self._pos
        if self._text.startswith("(", self._pos):
            inner = self._parenth()
        elif RE_VARIABLE.match(self._text, self._pos):
            inner = self._varpow()
        else:
            self._pos = save
            return None
        return self._node("factor", start, [inner])

    def _parenth(self) -> ParseNode:
        start = self._pos
        self._pos += 1  # "("
        expr = self._expression()
        if not self._accept(")"):
            raise self._error("expected ')'")
        children = [expr]
        exponent = self._exponent()
        if exponent is not None:
            children.append(exponent)
        return self._node("parenth", start, children)

    def _varpow(self) -> ParseNode:
        start = self._pos
        self._pos += 1
        variable = self._node("variable", start, [])
        children = [variable]
        exponent = self._exponent()
        if exponent is not None:
            children.append(exponent)
        return self._node("varpow", start, children)

    def _exponent(self) -> Optional[ParseNode]:
        save = self._pos
        if not self._accept("^"):
            self._pos = save
            return None
        self._skip_ws()
        m = RE_NUMBER.match(self._text, self._pos)
        if not m:
            raise self._error("expected a non-negative integer exponent after '^'")
        start = self._pos
        self._pos = m.end()
        return self._node("exponent", start, [])

    def _constant(self) -> Optional[ParseNode]:
        save = self._pos
        self._skip_ws()
        m = RE_NUMBER.match(self._text, self._pos)
        if not m:
            self._pos = save
            return None
        start = self._pos
        self._pos = m.end()
        return self._node("constant", start, [])


def parse(source: str) -> ParseNode:
    """
    Parse `source` into a parse tree rooted at an `expression` node.
    """
    return PolyParser().parse_text(source)
