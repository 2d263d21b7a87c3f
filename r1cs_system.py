"""
r1cs_system.py

A Rank-1 Constraint System: an ordered list of constraints plus a registry
mapping variable names to their indices in the variable vector.

Named variables are not strictly needed by an R1CS (a variable is fully
identified by its index), but keeping the mapping lets callers find the
wire that carries each input of the polynomial.

Index 0 is the constant 1 and is never handed out. Named and anonymous
variables share one monotonically increasing counter.

The system is append-only while it is being built and is frozen by the
compiler before being returned; after that every mutator raises
FrozenSystemError.
"""

from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional, Tuple

from errors import FrozenSystemError
from r1cs_constraint import Constraint, ONE_INDEX


class VariableRegistry:
    """
    Bijection name -> index plus the allocator for anonymous variables.
    """

    def __init__(self):
        self._names: Dict[str, int] = {}
        self._next_index = ONE_INDEX + 1

    def add_named(self, name: str) -> int:
        """
        Return the index of `name`, allocating one the first time it is seen.
        """
        index = self._names.get(name)
        if index is None:
            index = self.allocate()
            self._names[name] = index
        return index

    def allocate(self) -> int:
        index = self._next_index
        self._next_index += 1
        return index

    def get(self, name: str) -> Optional[int]:
        return self._names.get(name)

    @property
    def next_index(self) -> int:
        return self._next_index

    def names(self) -> Dict[str, int]:
        return dict(self._names)

    def __len__(self) -> int:
        return len(self._names)


class R1CSSystem:
    """
    Owns the variable registry and the constraints in emission order.
    """

    def __init__(self):
        self._registry = VariableRegistry()
        self._constraints: List[Constraint] = []
        self._frozen = False

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenSystemError("R1CS system is frozen; it cannot be modified")

    # ----------------------------
    # Mutators (only used while compiling)
    # ----------------------------

    def add_named_variable(self, name: str) -> int:
        self._check_mutable()
        return self._registry.add_named(name)

    def add_variable(self) -> int:
        self._check_mutable()
        return self._registry.allocate()

    def add_constraint(self, constraint: Constraint) -> None:
        self._check_mutable()
        if not isinstance(constraint, Constraint):
            raise TypeError(f"expected a Constraint, got {type(constraint).__name__}")
        self._constraints.append(constraint)

    def freeze(self) -> "R1CSSystem":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ----------------------------
    # Queries
    # ----------------------------

    def size(self) -> int:
        """
        Number of constraints in the system.
        """
        return len(self._constraints)

    def input_size(self) -> int:
        """
        Number of named variables in the system.
        """
        return len(self._registry)

    def get_variable(self, name: str) -> Optional[int]:
        return self._registry.get(name)

    @property
    def variables(self) -> Dict[str, int]:
        return self._registry.names()

    @property
    def num_variables(self) -> int:
        """
        Total number of wires, constant wire included.
        """
        return self._registry.next_index

    @property
    def constraints(self) -> Tuple[Constraint, ...]:
        return tuple(self._constraints)

    def __iter__(self) -> Iterator[Constraint]:
        return iter(tuple(self._constraints))

    def __len__(self) -> int:
        return len(self._constraints)

    def __getitem__(self, position: int) -> Constraint:
        return self._constraints[position]

    def find_matching_constraint(self, a: Mapping, b: Mapping, c: Optional[Mapping] = None) -> Optional[Constraint]:
        """
        Return the first constraint whose A and B (and C, when given) equal the
        supplied maps, or None.
        """
        for constraint in self._constraints:
            if not constraint.lhs_matches(a, b):
                continue
            if c is None or constraint.rhs_matches(c):
                return constraint
        return None

    def is_satisfied(self, assignment) -> bool:
        return all(constraint.is_satisfied(assignment) for constraint in self._constraints)

    def format_lines(self) -> List[str]:
        lines = ["=== R1CS ==="]
        for name, index in sorted(self._registry.names().items(), key=lambda kv: kv[1]):
            lines.append(f"u_{index} = {name}")
        for constraint in self._constraints:
            lines.append(constraint.format())
        return lines

    def __str__(self):
        return "\n".join(self.format_lines())

    def __repr__(self):
        return f"R1CSSystem(size={self.size()}, input_size={self.input_size()}, num_variables={self.num_variables})"

    def __eq__(self, other):
        if not isinstance(other, R1CSSystem):
            return NotImplemented
        return (self.variables == other.variables
                and self.num_variables == other.num_variables
                and self._constraints == other._constraints)

    __hash__ = None
