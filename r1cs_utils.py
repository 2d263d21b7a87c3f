"""
r1cs_utils.py

Helpers for exporting and inspecting a compiled R1CSSystem.

Export format (what `system_to_dict` produces and what the other helpers
consume):
{
  "variables": {"ONE": 0, "x": 1, "y": 2, "u_3": 3, ...},   # label -> index
  "constraints": [
      {"kind": "multiplication", "A": {"x": 1}, "B": {"y": 1}, "C": {"u_3": 1}},
      {"kind": "final", "A": {"ONE": 1}, "B": {"u_3": 1}, "C": {"ONE": 10}},
  ],
  "meta": {"size": 2, "input_size": 2, "num_variables": 4}
}

Index 0 is labelled with the configured one-symbol, named variables keep
their names and anonymous wires are labelled `<prefix><index>`.

numpy is used for the dense matrix view and for the vectorised
satisfaction check.
"""

from typing import Any, Dict, List, Set, Tuple

import numpy as np

from r1cs_constraint import ONE_INDEX
from r1cs_system import R1CSSystem


def variable_labels(system: R1CSSystem, one_symbol: str = "ONE", anonymous_prefix: str = "u_") -> List[str]:
    """
    Label of every wire, ordered by index.
    """
    labels = [f"{anonymous_prefix}{i}" for i in range(system.num_variables)]
    labels[ONE_INDEX] = one_symbol
    for name, idx in system.variables.items():
        labels[idx] = name
    return labels


def system_to_dict(system: R1CSSystem, one_symbol: str = "ONE", anonymous_prefix: str = "u_") -> Dict[str, Any]:
    """
    Convert a compiled system into the label-keyed dictionary described above.
    """
    labels = variable_labels(system, one_symbol, anonymous_prefix)
    if len(set(labels)) != len(labels):
        raise ValueError("variable labels collide; choose a different one_symbol or anonymous_prefix")

    constraints = []
    for constraint in system:
        entry = {"kind": constraint.kind.value}
        for part, lc in zip(("A", "B", "C"), constraint.parts()):
            entry[part] = {labels[idx]: lc[idx] for idx in lc.indices()}
        constraints.append(entry)

    return {
        "variables": {label: idx for idx, label in enumerate(labels)},
        "constraints": constraints,
        "meta": {
            "size": system.size(),
            "input_size": system.input_size(),
            "num_variables": system.num_variables,
        },
    }


def build_var_index(r1cs: Dict[str, Any]) -> Tuple[Dict[str, int], List[str]]:
    """
    Return (name_to_idx, idx_to_name_list) ensuring stable ordering.
    """
    vars_map = r1cs.get("variables", {})
    max_idx = max(vars_map.values()) if vars_map else -1
    idx_to_name = [None] * (max_idx + 1)
    for name, idx in vars_map.items():
        if idx < 0:
            raise ValueError("variable indices must be non-negative")
        idx_to_name[idx] = name
    for i, n in enumerate(idx_to_name):
        if n is None:
            idx_to_name[i] = f"<var_{i}_missing>"
    return dict(vars_map), idx_to_name


def constraints_to_dense_matrices(r1cs: Dict[str, Any], dtype=np.int64) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert sparse constraint dictionaries into dense numpy matrices A, B, C.

    Returns:
        A, B, C: numpy arrays of shape (m_constraints, n_variables)
    """
    vars_map, idx_to_name = build_var_index(r1cs)
    n = len(idx_to_name)
    constraints = r1cs.get("constraints", [])
    m = len(constraints)

    A = np.zeros((m, n), dtype=dtype)
    B = np.zeros((m, n), dtype=dtype)
    C = np.zeros((m, n), dtype=dtype)

    for i, c in enumerate(constraints):
        for part, matrix in (("A", A), ("B", B), ("C", C)):
            for var, coeff in c.get(part, {}).items():
                if var not in vars_map:
                    raise KeyError(f"Unknown variable '{var}' referenced in constraint {part} at index {i}")
                matrix[i, vars_map[var]] = int(coeff)

    return A, B, C


def assignment_vector(r1cs: Dict[str, Any], assignment: Dict[str, int]) -> np.ndarray:
    """
    Order a label -> value assignment by wire index. The constant wire is 1;
    a wire missing from the assignment is an error.
    """
    _, idx_to_name = build_var_index(r1cs)
    values = []
    for idx, name in enumerate(idx_to_name):
        if idx == ONE_INDEX:
            values.append(1)
        elif name in assignment:
            values.append(int(assignment[name]))
        else:
            raise KeyError(f"no value assigned to variable '{name}'")
    return np.array(values, dtype=object)


def eval_linear_form(linear: Dict[str, int], assignment: Dict[str, int], one_symbol: str = "ONE") -> int:
    """
    Evaluate a linear form var->coeff under a variable assignment.
    """
    s = 0
    for var, coeff in linear.items():
        val = 1 if var == one_symbol else assignment.get(var, 0)
        s += int(coeff) * int(val)
    return s


def eval_constraint(constraint: Dict[str, Any], assignment: Dict[str, int], one_symbol: str = "ONE") -> int:
    """
    Evaluate A(assignment) * B(assignment) - C(assignment).
    Returns the residual (zero for a satisfied constraint).
    """
    a_val = eval_linear_form(constraint.get("A", {}), assignment, one_symbol)
    b_val = eval_linear_form(constraint.get("B", {}), assignment, one_symbol)
    c_val = eval_linear_form(constraint.get("C", {}), assignment, one_symbol)
    return (a_val * b_val) - c_val


def unsatisfied_constraints(r1cs: Dict[str, Any], assignment: Dict[str, int]) -> List[int]:
    """
    Indices of the constraints violated by `assignment`.
    """
    A, B, C = constraints_to_dense_matrices(r1cs, dtype=object)
    w = assignment_vector(r1cs, assignment)
    residual = (A.dot(w) * B.dot(w)) - C.dot(w)
    return [i for i, r in enumerate(residual) if r != 0]


def is_satisfied(r1cs: Dict[str, Any], assignment: Dict[str, int]) -> bool:
    return not unsatisfied_constraints(r1cs, assignment)


def constraint_support(constraint: Dict[str, Any]) -> Set[str]:
    """
    Return the set of variable names that appear in the constraint (A or B or C).
    """
    s = set()
    for part in ("A", "B", "C"):
        s.update(constraint.get(part, {}).keys())
    return s


def constraint_nz_count(constraint: Dict[str, Any]) -> int:
    """
    Number of non-zero coefficient entries across A,B,C.
    """
    cnt = 0
    for part in ("A", "B", "C"):
        cnt += len([v for v in constraint.get(part, {}).values() if int(v) != 0])
    return cnt


def constraint_summary(constraint: Dict[str, Any]) -> Dict[str, Any]:
    supp = constraint_support(constraint)
    return {
        "kind": constraint.get("kind", ""),
        "support_size": len(supp),
        "nz_count": constraint_nz_count(constraint),
        "support": sorted(supp),
    }


def linear_dict_to_str(d: Dict[str, int]) -> str:
    """
    Convert a linear combination dict {'x': 2, 'y': -1} into a string "2*x + -1*y".
    """
    if not d:
        return "0"
    parts = []
    for v, coeff in d.items():
        parts.append(f"{v}" if coeff == 1 else f"{coeff}*{v}")
    return " + ".join(parts)
