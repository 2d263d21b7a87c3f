"""Compiler tests: constraint shapes, CSE, exponent chains and error paths."""

import math

import pytest

from errors import (
    CompileError,
    InvalidExponentError,
    NumericLiteralError,
    ParseError,
    UnsupportedConstructError,
)
from fingerprint import fingerprint_system
from poly_compiler import PolynomialCompiler, build_power, compile_polynomial
from poly_parser import ParseNode, parse
from r1cs_constraint import ConstraintKind
from r1cs_system import R1CSSystem


def kinds(system):
    return [c.kind for c in system]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def test_sum_of_three_variables():
    system = compile_polynomial("y + x + z", 31)
    assert system.size() == 2
    assert system.input_size() == 3
    x, y, z = (system.get_variable(n) for n in "xyz")
    assert (y, x, z) == (1, 2, 3)
    sum_c, final = system.constraints
    assert sum_c.kind is ConstraintKind.SUM
    assert sum_c.a == {0: 1}
    assert sum_c.b == {x: 1, y: 1, z: 1}
    assert sum_c.c == {4: 1}
    assert final.kind is ConstraintKind.FINAL
    assert final.a == {0: 1} and final.b == {4: 1} and final.c == {0: 31}


def test_product_of_two_variables():
    system = compile_polynomial("x*y", 10)
    assert system.size() == 2
    assert kinds(system) == [ConstraintKind.MULTIPLICATION, ConstraintKind.FINAL]
    assert system.find_matching_constraint({1: 1}, {2: 1}, {3: 1}) is not None
    assert system.constraints[-1].b == {3: 1}
    assert system.constraints[-1].c == {0: 10}


def test_power_of_eight_is_squaring_chain():
    system = compile_polynomial("x^8", 10)
    assert system.size() == 4
    assert kinds(system)[:3] == [ConstraintKind.MULTIPLICATION] * 3
    m8, m4, m2, final = system.constraints
    assert m2.a == {1: 1} and m2.b == {1: 1}
    (x2,) = m2.c.indices()
    assert m4.a == {x2: 1} and m4.b == {x2: 1}
    (x4,) = m4.c.indices()
    assert m8.a == {x4: 1} and m8.b == {x4: 1}
    (x8,) = m8.c.indices()
    assert final.b == {x8: 1}


def test_subtraction():
    system = compile_polynomial("x - y", 10)
    assert system.size() == 2
    assert system.constraints[0].b == {1: 1, 2: -1}
    assert system.constraints[0].c == {3: 1}


def test_parenthesised_power_with_odd_exponent(solve_wires):
    system = compile_polynomial("(x + y)^7", 2187)
    assert system.size() == 6
    assert kinds(system) == (
        [ConstraintKind.SUM] + [ConstraintKind.MULTIPLICATION] * 4 + [ConstraintKind.FINAL]
    )
    assert system.constraints[0].b == {1: 1, 2: 1}
    w = solve_wires(system, {"x": 1, "y": 2})
    assert system.is_satisfied(w)
    assert w[system.constraints[-1].b.indices()[0]] == 3 ** 7


def test_repeated_subexpression_is_compiled_once():
    system = compile_polynomial("x + x*x", 10)
    assert system.size() == 3
    assert system.input_size() == 1
    assert kinds(system) == [ConstraintKind.MULTIPLICATION, ConstraintKind.SUM, ConstraintKind.FINAL]
    assert system.constraints[0].lhs_matches({1: 1}, {1: 1})
    assert system.constraints[1].b == {1: 1, 2: 1}


def test_identical_terms_share_one_circuit():
    system = compile_polynomial("x*y + x*y", 0)
    assert system.size() == 3
    assert system.constraints[1].b == {3: 2}


def test_cancelling_terms_drop_out_of_sum():
    system = compile_polynomial("x - x", 0)
    assert system.constraints[0].b == {}
    assert system.constraints[0].c == {2: 1}


# ---------------------------------------------------------------------------
# Per-node behaviour
# ---------------------------------------------------------------------------


def test_single_variable_is_pass_through():
    system = compile_polynomial("x", 4)
    assert system.size() == 1
    assert system.constraints[0].b == {1: 1}
    assert system.constraints[0].c == {0: 4}


def test_bare_constant_binds_fresh_wire():
    system = compile_polynomial("5", 5)
    assert system.input_size() == 0
    constant, final = system.constraints
    assert constant.kind is ConstraintKind.CONSTANT
    assert constant.a == {0: 1} and constant.b == {0: 5} and constant.c == {1: 1}
    assert final.b == {1: 1}


def test_coefficient_emits_constant_multiplication():
    system = compile_polynomial("3x", 6)
    cm, final = system.constraints
    assert cm.kind is ConstraintKind.CONSTANT_MULTIPLICATION
    assert cm.a == {0: 3} and cm.b == {1: 1} and cm.c == {2: 1}
    assert final.b == {2: 1}


@pytest.mark.parametrize("source", ["1x", "1*x", "x^1", "(x)", "((x))^1"])
def test_free_operations_emit_nothing(source):
    system = compile_polynomial(source, 1)
    assert system.size() == 1
    assert system.constraints[0].b == {1: 1}


def test_product_fold_emits_one_multiplication_per_extra_factor():
    system = compile_polynomial("xyzw", 0)
    assert system.size() == 4
    assert kinds(system)[:3] == [ConstraintKind.MULTIPLICATION] * 3
    first, second, third = system.constraints[:3]
    assert first.lhs_matches({1: 1}, {2: 1})
    assert second.lhs_matches(first.c, {system.get_variable("z"): 1})
    assert third.lhs_matches(second.c, {system.get_variable("w"): 1})


def test_mixed_polynomial_is_satisfied_by_its_value(solve_wires):
    source = "3x^2 + 2y - 5 + (x - 1)^3 + 4x*5y"
    x, y = 2, 7
    value = 3 * x ** 2 + 2 * y - 5 + (x - 1) ** 3 + 4 * x * 5 * y
    system = compile_polynomial(source, value)
    w = solve_wires(system, {"x": x, "y": y})
    assert system.is_satisfied(w)

    wrong = compile_polynomial(source, value + 1)
    assert not wrong.is_satisfied(solve_wires(wrong, {"x": x, "y": y}))


def test_parenthesised_expression_without_exponent():
    system = compile_polynomial("2(x + y)", 0)
    assert kinds(system) == [
        ConstraintKind.SUM,
        ConstraintKind.CONSTANT_MULTIPLICATION,
        ConstraintKind.FINAL,
    ]


def test_input_size_counts_distinct_identifiers():
    system = compile_polynomial("xy + yz + zx + x^3", 0)
    assert system.input_size() == 3
    assert all(system.get_variable(n) != 0 for n in "xyz")
    assert system.get_variable("w") is None


# ---------------------------------------------------------------------------
# Exponentiation chain
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("exponent", list(range(1, 70)) + [1000, 2 ** 31 - 1])
def test_power_chain_constraint_count(exponent):
    system = R1CSSystem()
    base = system.add_named_variable("x")
    result = build_power(system, base, exponent)
    count = system.size()
    if exponent == 1:
        assert count == 0
        assert result == base
    else:
        assert 1 <= count <= 2 * math.ceil(math.log2(exponent))
        assert all(c.kind is ConstraintKind.MULTIPLICATION for c in system)


@pytest.mark.parametrize("exponent", [2, 3, 5, 6, 7, 12, 13, 31, 32, 39])
def test_power_chain_computes_the_power(exponent, solve_wires):
    system = compile_polynomial(f"x^{exponent}", 3 ** exponent)
    assert system.is_satisfied(solve_wires(system, {"x": 3}))


def test_power_chain_counts():
    assert compile_polynomial("x^2", 0).size() == 2
    assert compile_polynomial("x^3", 0).size() == 3
    assert compile_polynomial("x^8", 0).size() == 4
    assert compile_polynomial("x^7", 0).size() == 5


def test_power_chain_rejects_exponent_below_one():
    system = R1CSSystem()
    with pytest.raises(InvalidExponentError):
        build_power(system, 1, 0)
    with pytest.raises(InvalidExponentError):
        build_power(system, 1, -3)


# ---------------------------------------------------------------------------
# CSE modes and determinism
# ---------------------------------------------------------------------------


def test_syntactic_cse_is_whitespace_sensitive():
    system = compile_polynomial("x*y + x * y", 0)
    assert system.size() == 4


def test_whitespace_insensitive_cse():
    system = compile_polynomial("x*y + x * y", 0, cse_mode="whitespace-insensitive")
    assert system.size() == 3
    assert system.constraints[1].b == {3: 2}


def test_cse_off_recompiles_repeats():
    system = compile_polynomial("x*x + x*x", 0, cse_mode="off")
    assert system.size() == 4
    assert system.input_size() == 1
    assert system.constraints[2].b == {2: 1, 3: 1}


def test_unknown_cse_mode():
    with pytest.raises(ValueError):
        PolynomialCompiler(cse_mode="semantic")


def test_compilation_is_deterministic():
    source = "(x + y)^7 - 3xz + x*y*z + 12"
    first = compile_polynomial(source, 99)
    second = compile_polynomial(source, 99)
    assert first == second
    assert fingerprint_system(first) == fingerprint_system(second)


def test_compiler_instance_does_not_share_state_between_compiles():
    compiler = PolynomialCompiler()
    first = compiler.compile("x*y", 1)
    second = compiler.compile("x*y", 1)
    assert first == second
    assert first is not second
    assert compiler.context is None


def test_failed_compile_leaves_compiler_reusable():
    compiler = PolynomialCompiler()
    with pytest.raises(InvalidExponentError):
        compiler.compile("x + y^0", 1)
    assert compiler.context is None
    assert compiler.compile("x + y", 1) == compile_polynomial("x + y", 1)


def test_deep_nesting_is_a_compile_error():
    tree = parse("(" * 100 + "x" + ")" * 100)
    with pytest.raises(UnsupportedConstructError, match="nesting too deep"):
        compile_polynomial(tree, 1)
    with pytest.raises(CompileError):
        compile_polynomial("(" * 100 + "x" + ")" * 100, 1)
    assert compile_polynomial("(" * 20 + "x" + ")" * 20, 1).size() == 1


def test_compile_tree_accepts_parsed_input():
    tree = parse("x*y")
    assert compile_polynomial(tree, 10) == compile_polynomial("x*y", 10)


def test_result_is_frozen():
    system = compile_polynomial("x", 1)
    assert system.frozen
    assert system.constraints[-1].kind is ConstraintKind.FINAL


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_parse_errors_surface_as_compile_errors():
    with pytest.raises(ParseError):
        compile_polynomial("x + ", 1)
    with pytest.raises(CompileError):
        compile_polynomial("(x", 1)


@pytest.mark.parametrize("source", ["x^0", "(x + y)^0", "3x^0"])
def test_zero_exponent_is_rejected(source):
    with pytest.raises(InvalidExponentError):
        compile_polynomial(source, 1)


def test_exponent_wider_than_32_bits():
    with pytest.raises(NumericLiteralError) as exc:
        compile_polynomial("x^2147483648", 1)
    assert exc.value.role == "exponent"
    assert exc.value.position == 2


def test_constant_wider_than_64_bits():
    compile_polynomial("9223372036854775807", 1)
    with pytest.raises(NumericLiteralError) as exc:
        compile_polynomial("9223372036854775808", 1)
    assert exc.value.role == "constant"
    with pytest.raises(NumericLiteralError):
        compile_polynomial("99999999999999999999x", 1)


@pytest.mark.parametrize("expected", [2 ** 63, -(2 ** 63) - 1, "10", 1.5, True])
def test_expected_result_must_be_int64(expected):
    with pytest.raises(ValueError):
        compile_polynomial("x", expected)


def test_unknown_node_kind_fails_fast():
    bogus = ParseNode("modulo", "x", 0, 1)
    root = ParseNode("expression", "x", 0, 1, (ParseNode("term", "x", 0, 1, (bogus,)),))
    with pytest.raises(UnsupportedConstructError) as exc:
        compile_polynomial(root, 1)
    assert exc.value.rule == "modulo"
    assert exc.value.context == "term"


def test_unexpected_child_kind_fails_fast():
    exponent = ParseNode("exponent", "2", 0, 1)
    root = ParseNode("expression", "2", 0, 1, (ParseNode("term", "2", 0, 1, (exponent,)),))
    with pytest.raises(UnsupportedConstructError):
        compile_polynomial(root, 1)


def test_root_must_be_an_expression():
    with pytest.raises(UnsupportedConstructError):
        compile_polynomial(ParseNode("term", "x", 0, 1), 1)
