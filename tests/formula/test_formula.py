"""
Tests for Formula parsing.

Validates the supported subset of R's formula notation: main effects,
`:` and `*` interactions, intercept suppression, term removal and
one-sided (response-less) formulas.
"""

import pytest

from pyregkit.core.exceptions import FormulaError
from pyregkit.formula import Formula, Term


class TestParse:

    def test_main_effects(self):
        f = Formula.parse("y ~ a + b")
        assert f.response == "y"
        assert f.terms == (Term(("a",)), Term(("b",)))
        assert f.intercept

    def test_star_expands(self):
        f = Formula.parse("y ~ a*b")
        assert [t.label for t in f.terms] == ["a", "b", "a:b"]

    def test_interactions_sorted_after_main_effects(self):
        f = Formula.parse("y ~ a:b + c")
        assert [t.label for t in f.terms] == ["c", "a:b"]

    def test_interaction_order_irrelevant(self):
        assert Term(("a", "b")) == Term(("b", "a"))
        f = Formula.parse("y ~ a:b + b:a")
        assert len(f.terms) == 1

    @pytest.mark.parametrize("text", ["y ~ a - 1", "y ~ a + 0", "y ~ 0 + a"])
    def test_no_intercept(self, text):
        f = Formula.parse(text)
        assert not f.intercept
        assert [t.label for t in f.terms] == ["a"]

    def test_intercept_only(self):
        f = Formula.parse("y ~ 1")
        assert f.terms == ()
        assert f.intercept

    def test_term_removal(self):
        f = Formula.parse("y ~ a*b - a:b")
        assert [t.label for t in f.terms] == ["a", "b"]

    def test_one_sided(self):
        f = Formula.parse("~ age + sex")
        assert f.response is None
        assert f.columns == ("age", "sex")

    def test_columns_response_first(self):
        f = Formula.parse("y ~ b*a + c")
        assert f.columns == ("y", "b", "a", "c")
        assert f.predictors == ("b", "a", "c")

    def test_dotted_names(self):
        f = Formula.parse("log.wage ~ years_ed")
        assert f.response == "log.wage"

    def test_str(self):
        assert str(Formula.parse("y ~ a*b - 1")) == "y ~ a + b + a:b + 0"
        assert str(Formula.parse("~ x")) == "~ x"

    def test_baselines_carried(self):
        f = Formula.parse("y ~ sex", baselines={"sex": "m"})
        assert f.baselines == {"sex": "m"}


class TestErrors:

    @pytest.mark.parametrize("text", [
        "y + a",            # no tilde
        "y ~ a ~ b",        # two tildes
        "y ~ ",             # empty rhs
        "y ~ a + ",         # dangling operator
        "y ~ a + 2b",       # invalid name
        "y z ~ a",          # invalid response
    ])
    def test_malformed(self, text):
        with pytest.raises(FormulaError):
            Formula.parse(text)

    def test_three_way_interaction(self):
        with pytest.raises(FormulaError, match="more than two"):
            Formula.parse("y ~ a:b:c")
        with pytest.raises(FormulaError, match="more than two"):
            Formula.parse("y ~ a*b*c")

    def test_repeated_factor(self):
        with pytest.raises(FormulaError, match="repeats"):
            Formula.parse("y ~ a:a")

    def test_not_a_string(self):
        with pytest.raises(FormulaError):
            Formula.parse(42)
