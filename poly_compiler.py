"""
poly_compiler.py

Compile a polynomial parse tree into an R1CS.

The compiler walks the tree once, recursively. Every visit returns the index
of the variable that carries the value of the visited node and, as a side
effect, appends the constraints that define that variable to the system.

Per node kind:
  - variable     named wire, no constraint
  - varpow       variable raised to an optional exponent (square-and-multiply)
  - parenth      inner expression raised to an optional exponent
  - factor       pass-through to varpow / parenth
  - cfactor      coefficient * factor (one constant multiplication unless the coefficient is 1)
  - product      left fold, one multiplication per extra factor
  - constant     one constant constraint binding a fresh wire to the literal
  - term         pass-through to product / cfactor / factor / constant
  - add_term,
    sub_term     pass-through; the enclosing expression applies the sign
  - expression   one sum constraint, unless it is a single term without operators

Each visit method is wrapped by `memoized`: results are cached per compile
under (node kind, source text of the node), so a sub-expression that occurs
twice is compiled once and no constraints are emitted on the second visit.

Finally a single final constraint binds the root wire to the expected result.
"""

import functools
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from errors import (
    InvalidExponentError,
    NumericLiteralError,
    UnsupportedConstructError,
)
from poly_parser import ParseNode, PolyParser
from r1cs_constraint import Constraint, ONE_INDEX, SumConstraint
from r1cs_system import R1CSSystem

logger = logging.getLogger("poly2r1cs.compiler")

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
INT32_MAX = (1 << 31) - 1

CSE_MODES = ("syntactic", "whitespace-insensitive", "off")

RE_WS = re.compile(r"\s+")


# ----------------------------
# Per-compile state
# ----------------------------

@dataclass
class CompileContext:
    """
    Mutable state owned by exactly one compile call.
    """
    system: R1CSSystem = field(default_factory=R1CSSystem)
    cse_mode: str = "syntactic"
    cache: Dict[Tuple[str, str], int] = field(default_factory=dict)
    cache_hits: int = 0

    def cache_key(self, node: ParseNode) -> Tuple[str, str]:
        text = node.text
        if self.cse_mode == "whitespace-insensitive":
            text = RE_WS.sub("", text)
        return node.kind, text


def memoized(visit):
    """
    Cache the output wire of a visit method by (node kind, node text).

    On a hit the cached index is returned and nothing is emitted.
    """
    @functools.wraps(visit)
    def wrapper(self, node: ParseNode) -> int:
        ctx = self.context
        if ctx.cse_mode == "off":
            return visit(self, node)
        key = ctx.cache_key(node)
        cached = ctx.cache.get(key)
        if cached is not None:
            ctx.cache_hits += 1
            logger.debug("cache hit %s %r -> u_%d", node.kind, node.text, cached)
            return cached
        result = visit(self, node)
        ctx.cache[key] = result
        return result
    return wrapper


# ----------------------------
# Literals
# ----------------------------

def parse_int_literal(node: ParseNode, role: str) -> int:
    """
    Convert a constant or exponent node to int, checking it fits i64 / i32.
    """
    upper = INT32_MAX if role == "exponent" else INT64_MAX
    try:
        value = int(node.text)
    except ValueError:
        raise NumericLiteralError(node.text, role, node.start) from None
    if value > upper:
        raise NumericLiteralError(node.text, role, node.start)
    return value


# ----------------------------
# Exponentiation chain
# ----------------------------

def build_power(system: R1CSSystem, base: int, exponent: int) -> int:
    """
    Emit multiplication constraints computing u_base ** exponent and return
    the index of the result.

    The chain is built top-down: the result wire is allocated first, then
    the exponent is reduced to 1 by halving when even (one squaring) and
    decrementing when odd (one multiplication by the base). Halving is
    preferred, so `x^8` costs 3 constraints and `x^7` costs 4.
    """
    if exponent < 1:
        raise InvalidExponentError(exponent)
    if exponent == 1:
        return base

    logger.debug("power chain u_%d ^ %d", base, exponent)
    result = system.add_variable()
    acc = result
    remaining = exponent
    while remaining > 1:
        if remaining % 2 == 0:
            remaining //= 2
            if remaining == 1:
                system.add_constraint(Constraint.multiplication(base, base, acc))
            else:
                half = system.add_variable()
                system.add_constraint(Constraint.multiplication(half, half, acc))
                acc = half
        else:
            remaining -= 1
            lower = system.add_variable()
            system.add_constraint(Constraint.multiplication(lower, base, acc))
            acc = lower
    return result


# ----------------------------
# Tree walk
# ----------------------------

class PolynomialCompiler:
    """
    Turns polynomial source (or an already parsed tree) into an R1CSSystem.

    A compiler object holds only settings; all state of a compilation lives in
    a fresh CompileContext, so compiles never share caches or counters.
    """

    def __init__(self, cse_mode: str = "syntactic", parser: Optional[PolyParser] = None):
        if cse_mode not in CSE_MODES:
            raise ValueError(f"unknown cse_mode '{cse_mode}', expected one of {CSE_MODES}")
        self.cse_mode = cse_mode
        self.parser = parser or PolyParser()
        self.context: Optional[CompileContext] = None
        self._handlers = {
            "expression": self.visit_expression,
            "add_term": self.visit_signed_term,
            "sub_term": self.visit_signed_term,
            "term": self.visit_term,
            "product": self.visit_product,
            "cfactor": self.visit_cfactor,
            "factor": self.visit_factor,
            "varpow": self.visit_varpow,
            "parenth": self.visit_parenth,
            "variable": self.visit_variable,
            "constant": self.visit_constant,
        }

    def compile(self, source: str, expected_result: int) -> R1CSSystem:
        """
        Parse `source` and compile it. Raises a CompileError subclass on failure.
        """
        root = self.parser.parse_text(source)
        return self.compile_tree(root, expected_result)

    def compile_tree(self, root: ParseNode, expected_result: int) -> R1CSSystem:
        _check_expected_result(expected_result)
        if root.kind != "expression":
            raise UnsupportedConstructError(root.kind, "top level")

        self.context = CompileContext(cse_mode=self.cse_mode)
        try:
            output = self.visit(root)
            system = self.context.system
            system.add_constraint(Constraint.final(expected_result, output))
            logger.info("compiled %r: %d constraints, %d inputs, %d cache hits",
                        root.text, system.size(), system.input_size(), self.context.cache_hits)
            return system.freeze()
        except RecursionError:
            raise UnsupportedConstructError("nesting too deep", root.kind) from None
        finally:
            self.context = None

    # ----------------------------
    # Dispatch
    # ----------------------------

    def visit(self, node: ParseNode, parent: Optional[ParseNode] = None) -> int:
        handler = self._handlers.get(node.kind)
        if handler is None:
            raise UnsupportedConstructError(node.kind, parent.kind if parent else None)
        return handler(node)

    def _emit(self, constraint: Constraint) -> None:
        logger.debug("emit %s: %s", constraint.kind.value, constraint.format())
        self.context.system.add_constraint(constraint)

    def _power(self, base: int, exponent_node: Optional[ParseNode]) -> int:
        if exponent_node is None:
            return base
        exponent = parse_int_literal(exponent_node, "exponent")
        return build_power(self.context.system, base, exponent)

    # ----------------------------
    # Visitors
    # ----------------------------

    @memoized
    def visit_variable(self, node: ParseNode) -> int:
        return self.context.system.add_named_variable(node.text)

    @memoized
    def visit_varpow(self, node: ParseNode) -> int:
        base = None
        exponent = None
        for child in node.children:
            if child.kind == "variable":
                base = self.visit(child, node)
            elif child.kind == "exponent":
                exponent = child
            else:
                raise UnsupportedConstructError(child.kind, node.kind)
        if base is None:
            raise UnsupportedConstructError("missing variable", node.kind)
        return self._power(base, exponent)

    @memoized
    def visit_parenth(self, node: ParseNode) -> int:
        inner = None
        exponent = None
        for child in node.children:
            if child.kind == "expression":
                inner = self.visit(child, node)
            elif child.kind == "exponent":
                exponent = child
            else:
                raise UnsupportedConstructError(child.kind, node.kind)
        if inner is None:
            raise UnsupportedConstructError("missing expression", node.kind)
        return self._power(inner, exponent)

    @memoized
    def visit_factor(self, node: ParseNode) -> int:
        return self._visit_only_child(node, ("varpow", "parenth"))

    @memoized
    def visit_cfactor(self, node: ParseNode) -> int:
        coefficient = None
        factor = None
        for child in node.children:
            if child.kind == "constant":
                coefficient = parse_int_literal(child, "constant")
            elif child.kind == "factor":
                factor = self.visit(child, node)
            else:
                raise UnsupportedConstructError(child.kind, node.kind)
        if factor is None:
            raise UnsupportedConstructError("missing factor", node.kind)
        if coefficient is None or coefficient == 1:
            return factor
        output = self.context.system.add_variable()
        self._emit(Constraint.constant_multiplication(coefficient, factor, output))
        return output

    @memoized
    def visit_product(self, node: ParseNode) -> int:
        acc = None
        for child in node.children:
            if child.kind not in ("cfactor", "factor"):
                raise UnsupportedConstructError(child.kind, node.kind)
            value = self.visit(child, node)
            if acc is None:
                acc = value
                continue
            output = self.context.system.add_variable()
            self._emit(Constraint.multiplication(acc, value, output))
            acc = output
        return ONE_INDEX if acc is None else acc

    @memoized
    def visit_constant(self, node: ParseNode) -> int:
        value = parse_int_literal(node, "constant")
        output = self.context.system.add_variable()
        self._emit(Constraint.constant(value, output))
        return output

    @memoized
    def visit_term(self, node: ParseNode) -> int:
        return self._visit_only_child(node, ("constant", "cfactor", "product", "factor"))

    @memoized
    def visit_signed_term(self, node: ParseNode) -> int:
        return self._visit_only_child(node, ("term",))

    @memoized
    def visit_expression(self, node: ParseNode) -> int:
        if not node.children or node.children[0].kind != "term":
            raise UnsupportedConstructError(node.children[0].kind if node.children else "empty", node.kind)

        leading = self.visit(node.children[0], node)
        if len(node.children) == 1:
            return leading

        total = SumConstraint().add(leading)
        for child in node.children[1:]:
            if child.kind == "add_term":
                total.add(self.visit(child, node))
            elif child.kind == "sub_term":
                total.subtract(self.visit(child, node))
            else:
                raise UnsupportedConstructError(child.kind, node.kind)
        output = self.context.system.add_variable()
        total.set_output(output)
        self._emit(total.build())
        return output

    def _visit_only_child(self, node: ParseNode, allowed: Tuple[str, ...]) -> int:
        if len(node.children) != 1:
            raise UnsupportedConstructError(f"{len(node.children)} children", node.kind)
        child = node.children[0]
        if child.kind not in allowed:
            raise UnsupportedConstructError(child.kind, node.kind)
        return self.visit(child, node)


def _check_expected_result(expected_result: Any) -> None:
    if isinstance(expected_result, bool) or not isinstance(expected_result, int):
        raise ValueError(f"expected_result must be an int, got {type(expected_result).__name__}")
    if not INT64_MIN <= expected_result <= INT64_MAX:
        raise ValueError(f"expected_result {expected_result} does not fit in 64 bits")


def compile_polynomial(source: Union[str, ParseNode], expected_result: int, cse_mode: str = "syntactic") -> R1CSSystem:
    """
    Compile polynomial source text (or a parse tree) into a frozen R1CSSystem
    whose last constraint asserts that the polynomial equals expected_result.
    """
    compiler = PolynomialCompiler(cse_mode=cse_mode)
    if isinstance(source, ParseNode):
        return compiler.compile_tree(source, expected_result)
    return compiler.compile(source, expected_result)
