"""
fingerprint.py

Deterministic fingerprints for constraints and whole constraint systems.
Two compiles of the same source produce the same fingerprint, which makes
the fingerprint a cheap way to compare or cache compiled systems.

We use SHA-256 and provide an option to truncate the hex digest for compactness.
"""

import hashlib
from typing import Optional

from r1cs_constraint import Constraint
from r1cs_system import R1CSSystem


def _normalize_constraint_representation(constraint: Constraint) -> str:
    """
    Canonical string for a constraint: kind, then each part sorted by index.
    """
    parts = [constraint.kind.value]
    for label, lc in zip(("A", "B", "C"), constraint.parts()):
        parts.append(label + ":" + ",".join(f"{idx}={lc[idx]}" for idx in lc.indices()))
    return "|".join(parts)


def _digest(rep: str, truncate: Optional[int]) -> str:
    h = hashlib.sha256(rep.encode("utf-8")).hexdigest()
    if truncate is None:
        return h
    return h[:truncate]


def fingerprint_constraint(constraint: Constraint, truncate: Optional[int] = 16) -> str:
    """
    Hex fingerprint of a single constraint, truncated to `truncate` characters
    (None keeps the full digest).
    """
    return _digest(_normalize_constraint_representation(constraint), truncate)


def fingerprint_system(system: R1CSSystem, truncate: Optional[int] = 16) -> str:
    """
    Hex fingerprint of a whole system: named variables, wire count and the
    constraints in emission order.
    """
    lines = [f"n={system.num_variables}"]
    for name, idx in sorted(system.variables.items()):
        lines.append(f"{name}={idx}")
    for constraint in system:
        lines.append(_normalize_constraint_representation(constraint))
    return _digest("\n".join(lines), truncate)
