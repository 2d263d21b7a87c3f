"""
r1cs_constraint.py

Single R1CS constraints and the sparse linear combinations they are made of.

A constraint has the form `(Σ a_i u_i) * (Σ b_j u_j) = Σ c_k u_k`, where the
`u_i` are the entries of the variable vector and `u_0` is always the
constant 1. Each of the three sums is a LinearCombination: a sparse map
from variable index to an integer coefficient (missing index -> 0).

Constraints can only be built through the named constructors on
Constraint (or through SumConstraint.build()), so every constraint in a
system has one of five shapes:

  - multiplication            u_i * u_j = u_k
  - constant multiplication   s * u_j = u_k
  - constant                  s = u_k
  - sum                       Σ ±u_i = u_k
  - final                     u_k = expected
"""

from collections.abc import Mapping
from enum import Enum
from typing import Dict, Iterator, Optional, Sequence, Tuple

# index of the constant-one wire
ONE_INDEX = 0


class LinearCombination(Mapping):
    """
    Immutable sparse vector index -> coefficient. Compares equal to any
    mapping with the same items, so tests can use plain dicts.
    """
    __slots__ = ("_terms",)

    def __init__(self, terms: Optional[Dict[int, int]] = None):
        self._terms: Dict[int, int] = dict(terms) if terms else {}

    def __getitem__(self, index: int) -> int:
        return self._terms[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def __eq__(self, other):
        if isinstance(other, Mapping):
            return dict(self._terms) == dict(other.items())
        return NotImplemented

    def __hash__(self):
        return hash(frozenset(self._terms.items()))

    def __repr__(self):
        return f"LinearCombination({self._terms!r})"

    def coefficient(self, index: int) -> int:
        return self._terms.get(index, 0)

    def indices(self) -> Tuple[int, ...]:
        return tuple(sorted(self._terms))

    def to_dict(self) -> Dict[int, int]:
        return dict(self._terms)

    def evaluate(self, assignment: Sequence[int]) -> int:
        """
        Evaluate Σ coeff * assignment[index]. assignment[0] is forced to 1.
        """
        total = 0
        for index, coeff in self._terms.items():
            value = 1 if index == ONE_INDEX else assignment[index]
            total += coeff * value
        return total

    def format(self) -> str:
        """
        Render as `3 + u_1 + -2u_4`; the constant wire is shown as the bare number.
        """
        values = []
        for index in sorted(self._terms):
            coeff = self._terms[index]
            if index == ONE_INDEX:
                values.append(str(coeff))
            elif coeff == 1:
                values.append(f"u_{index}")
            else:
                values.append(f"{coeff}u_{index}")
        return " + ".join(values) if values else "0"


class ConstraintKind(Enum):
    MULTIPLICATION = "multiplication"
    CONSTANT_MULTIPLICATION = "constant_multiplication"
    CONSTANT = "constant"
    SUM = "sum"
    FINAL = "final"


_CONSTRUCTOR_KEY = object()


class Constraint:
    """
    Read-only R1CS constraint tagged with the constructor that built it.

    Use the classmethods (multiplication, constant_multiplication,
    constant, final) or SumConstraint to create instances.
    """
    __slots__ = ("_kind", "_a", "_b", "_c")

    def __init__(self, kind: ConstraintKind, a: Dict[int, int], b: Dict[int, int], c: Dict[int, int], _key=None):
        if _key is not _CONSTRUCTOR_KEY:
            raise TypeError("constraints must be created through the Constraint constructors")
        self._kind = kind
        self._a = LinearCombination(a)
        self._b = LinearCombination(b)
        self._c = LinearCombination(c)

    # ----------------------------
    # Constructors
    # ----------------------------

    @classmethod
    def multiplication(cls, i: int, j: int, k: int) -> "Constraint":
        """
        u_i * u_j = u_k
        """
        return cls(ConstraintKind.MULTIPLICATION, {i: 1}, {j: 1}, {k: 1}, _key=_CONSTRUCTOR_KEY)

    @classmethod
    def constant_multiplication(cls, s: int, j: int, k: int) -> "Constraint":
        """
        s * u_j = u_k
        """
        return cls(ConstraintKind.CONSTANT_MULTIPLICATION, {ONE_INDEX: s}, {j: 1}, {k: 1}, _key=_CONSTRUCTOR_KEY)

    @classmethod
    def constant(cls, s: int, k: int) -> "Constraint":
        """
        1 * s = u_k, binds u_k to the literal s.
        """
        return cls(ConstraintKind.CONSTANT, {ONE_INDEX: 1}, {ONE_INDEX: s}, {k: 1}, _key=_CONSTRUCTOR_KEY)

    @classmethod
    def final(cls, expected: int, k: int) -> "Constraint":
        """
        1 * u_k = expected, the result of the whole system.
        """
        return cls(ConstraintKind.FINAL, {ONE_INDEX: 1}, {k: 1}, {ONE_INDEX: expected}, _key=_CONSTRUCTOR_KEY)

    # ----------------------------
    # Read-only view
    # ----------------------------

    @property
    def kind(self) -> ConstraintKind:
        return self._kind

    @property
    def a(self) -> LinearCombination:
        return self._a

    @property
    def b(self) -> LinearCombination:
        return self._b

    @property
    def c(self) -> LinearCombination:
        return self._c

    def parts(self) -> Tuple[LinearCombination, LinearCombination, LinearCombination]:
        return self._a, self._b, self._c

    def lhs_matches(self, a: Mapping, b: Mapping) -> bool:
        return self._a == a and self._b == b

    def rhs_matches(self, c: Mapping) -> bool:
        return self._c == c

    def evaluate(self, assignment: Sequence[int]) -> int:
        """
        Residual A(v) * B(v) - C(v); zero when the constraint holds.
        """
        return self._a.evaluate(assignment) * self._b.evaluate(assignment) - self._c.evaluate(assignment)

    def is_satisfied(self, assignment: Sequence[int]) -> bool:
        return self.evaluate(assignment) == 0

    def format(self) -> str:
        a_str = self._a.format()
        b_str = self._b.format()
        c_str = self._c.format()
        if a_str == "1":
            return f"{b_str} = {c_str}"
        return f"({a_str})*({b_str}) = {c_str}"

    def __eq__(self, other):
        if not isinstance(other, Constraint):
            return NotImplemented
        return (self._kind, self._a, self._b, self._c) == (other._kind, other._a, other._b, other._c)

    def __hash__(self):
        return hash((self._kind, self._a, self._b, self._c))

    def __repr__(self):
        return (f"Constraint(kind={self._kind.value}, a={self._a.to_dict()}, "
                f"b={self._b.to_dict()}, c={self._c.to_dict()})")


class SumConstraint:
    """
    Builder for a sum constraint `1 * (Σ ±u_i) = u_k`.

    Starts as the empty constraint `1 * 0 = 0`. Adding the same index more
    than once accumulates its coefficient; a coefficient that cancels to
    zero is dropped.
    """

    def __init__(self):
        self._b: Dict[int, int] = {}
        self._output: Optional[int] = None

    def _accumulate(self, i: int, delta: int) -> None:
        coeff = self._b.get(i, 0) + delta
        if coeff == 0:
            self._b.pop(i, None)
        else:
            self._b[i] = coeff

    def add(self, i: int) -> "SumConstraint":
        self._accumulate(i, 1)
        return self

    def subtract(self, i: int) -> "SumConstraint":
        self._accumulate(i, -1)
        return self

    def set_output(self, k: int) -> "SumConstraint":
        self._output = k
        return self

    @property
    def output(self) -> Optional[int]:
        return self._output

    def build(self) -> Constraint:
        c = {self._output: 1} if self._output is not None else {}
        return Constraint(ConstraintKind.SUM, {ONE_INDEX: 1}, dict(self._b), c, _key=_CONSTRUCTOR_KEY)
