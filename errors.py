"""
errors.py

Exception types raised while turning a polynomial into an R1CS.

Every compile-time failure derives from CompileError so callers can catch
a single type. Mutating a finished (frozen) constraint system is a
programming error and raises FrozenSystemError instead.
"""

from typing import Optional


class CompileError(Exception):
    """
    Base class for all errors raised by parsing or compiling a polynomial.
    """


class ParseError(CompileError):
    """
    The source text does not match the polynomial grammar.
    """

    def __init__(self, message: str, position: int, line: int = 1, column: Optional[int] = None):
        self.message = message
        self.position = position
        self.line = line
        self.column = column if column is not None else position + 1
        super().__init__(f"{message} (line {self.line}, column {self.column})")


class NumericLiteralError(CompileError):
    """
    An integer literal does not fit the width expected for its role
    (signed 64-bit for constants, signed 32-bit for exponents).
    """

    def __init__(self, literal: str, role: str, position: Optional[int] = None):
        self.literal = literal
        self.role = role
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"{role} literal '{literal}'{where} is out of range")


class InvalidExponentError(CompileError):
    """
    Exponents must be at least 1.
    """

    def __init__(self, exponent: int):
        self.exponent = exponent
        super().__init__(f"exponent must be >= 1, got {exponent}")


class UnsupportedConstructError(CompileError):
    """
    The compiler reached a parse-tree rule it has no handler for.
    """

    def __init__(self, rule: str, context: Optional[str] = None):
        self.rule = rule
        self.context = context
        msg = f"unsupported construct: {rule}"
        if context:
            msg += f" inside {context}"
        super().__init__(msg)


class FrozenSystemError(RuntimeError):
    """
    Raised when a finished constraint system is modified.
    """
