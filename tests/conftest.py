"""Shared helpers for the test suite."""

import pytest


def _solve_wires(system, inputs):
    """Fill in every wire of a compiled system from values of its named inputs.

    Repeatedly evaluates constraints whose A and B sides are fully known and
    whose C side is a single unknown wire, until nothing changes. Returns the
    full assignment vector (index 0 is the constant 1).
    """
    values = {0: 1}
    for name, value in inputs.items():
        values[system.get_variable(name)] = value
    progress = True
    while progress:
        progress = False
        for constraint in system:
            if len(constraint.c) != 1:
                continue
            (k,) = constraint.c.indices()
            if k == 0 or k in values:
                continue
            if not all(i in values for i in constraint.a.indices() + constraint.b.indices()):
                continue
            a = sum(coeff * values[i] for i, coeff in constraint.a.items())
            b = sum(coeff * values[i] for i, coeff in constraint.b.items())
            values[k] = a * b // constraint.c[k]
            progress = True
    return [values.get(i, 0) for i in range(system.num_variables)]


@pytest.fixture
def solve_wires():
    return _solve_wires
