"""
Tests for the Z3 expression helpers used by the instantiation engine.

Covers variable detection, occurrence traversal, substitution through a
callback, equality constraints and the fresh-variable generator.
"""

import pytest
import z3

from callflat.z3model.expressions import (
    VariableGenerator,
    is_var,
    is_bool_var,
    occurrences,
    variables,
    substitute,
    equate,
    conjoin,
)


x, y, z = z3.Ints("x y z")
c = z3.Bool("c")


class TestVariables:
    """Telling variables apart from literals and applications."""

    def test_constants_are_variables(self):
        assert is_var(x)
        assert is_var(c)

    def test_literals_are_not_variables(self):
        assert not is_var(z3.IntVal(3))
        assert not is_var(z3.BoolVal(True))

    def test_applications_are_not_variables(self):
        assert not is_var(x + 1)
        assert not is_var(z3.And(c, c))

    def test_none_is_not_a_variable(self):
        assert not is_var(None)

    def test_bool_flavor(self):
        assert is_bool_var(c)
        assert not is_bool_var(x)
        assert not is_bool_var(z3.Not(c))


class TestOccurrences:

    def test_repeated_variables_are_yielded_per_occurrence(self):
        found = [str(v) for v in occurrences(x + x * y)]
        assert found == ["x", "x", "y"]

    def test_variables_are_distinct_in_first_occurrence_order(self):
        found = [str(v) for v in variables(y + x * y + z)]
        assert found == ["y", "x", "z"]

    def test_variables_of_none(self):
        assert variables(None) == []

    def test_literals_have_no_occurrences(self):
        assert list(occurrences(z3.IntVal(1) + 2)) == []


class TestSubstitute:

    def test_rewrites_selected_variables(self):
        result = substitute(x + y, lambda v: z if v.eq(x) else None)
        assert z3.eq(result, z + y)

    def test_none_answer_keeps_variable(self):
        expr = x * y
        assert z3.eq(substitute(expr, lambda v: None), expr)

    def test_substitute_none_is_none(self):
        assert substitute(None, lambda v: z) is None

    def test_callback_runs_once_per_occurrence(self):
        calls = []

        def record(var):
            calls.append(str(var))
            return None

        substitute(z3.If(c, x + x, y), record)
        assert calls == ["c", "x", "x", "y"]

    def test_first_answer_wins(self):
        answers = iter([y, z])
        result = substitute(x + x, lambda v: next(answers))
        assert z3.eq(result, y + y)

    def test_boolean_variables_are_substituted(self):
        d = z3.Bool("d")
        result = substitute(z3.And(c, x > 0), lambda v: d if v.eq(c) else None)
        assert z3.eq(result, z3.And(d, x > 0))


class TestEquate:

    def test_absent_rhs_yields_nothing(self):
        assert equate(x, None) == []

    def test_expression_equality(self):
        eqs = equate(x, y + 1)
        assert len(eqs) == 1
        assert z3.eq(eqs[0], x == y + 1)

    def test_boolean_equality(self):
        d = z3.Bool("d")
        eqs = equate(c, d)
        assert len(eqs) == 1
        assert z3.is_eq(eqs[0])
        assert z3.is_bool(eqs[0].arg(0))


class TestConjoin:

    def test_true_is_dropped(self):
        assert z3.eq(conjoin(z3.BoolVal(True), c), c)
        assert z3.eq(conjoin(c, z3.BoolVal(True)), c)

    def test_nontrivial_operands_are_conjoined(self):
        d = z3.Bool("d")
        assert z3.eq(conjoin(c, d), z3.And(c, d))


class TestVariableGenerator:

    def test_fresh_variables_never_repeat(self):
        gen = VariableGenerator()
        names = [str(gen.fresh()) for _ in range(50)]
        assert len(set(names)) == 50

    def test_default_sort_is_int(self):
        assert VariableGenerator().fresh().sort() == z3.IntSort()

    def test_fresh_like_keeps_sort(self):
        gen = VariableGenerator()
        assert gen.fresh_like(c).sort() == z3.BoolSort()
        assert gen.fresh_like(z3.Real("q")).sort() == z3.RealSort()

    def test_prefix(self):
        gen = VariableGenerator(prefix="k")
        assert str(gen.fresh()) == "k0"
        assert str(gen.fresh()) == "k1"

    def test_generators_are_independent(self):
        assert str(VariableGenerator().fresh()) == str(VariableGenerator().fresh())
