"""
Tests for build_design: treatment coding, interactions, missing-row
handling and degenerate designs.
"""

import numpy as np
import pytest
from numpy.testing import assert_array_equal

from pyregkit.core.exceptions import FormulaError
from pyregkit.formula import INTERCEPT, Formula, build_design
from pyregkit.frame import Frame


@pytest.fixture
def frame():
    return Frame.from_dict({
        "y": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
        "x": [0.5, 1.0, 1.5, 2.0, 2.5, 3.0],
        "color": ["red", "green", "blue", "red", "green", "blue"],
        "size": ["s", "l", "s", "l", "s", "l"],
    })


class TestEncoding:

    def test_numeric_with_intercept(self, frame):
        d = build_design(frame, "y ~ x")
        assert d.column_names == (INTERCEPT, "x")
        assert_array_equal(d.X[:, 0], np.ones(6))
        assert_array_equal(d.X[:, 1], frame.numeric("x"))
        assert_array_equal(d.y, frame.numeric("y"))
        assert d.has_intercept

    def test_treatment_coding_first_level_baseline(self, frame):
        d = build_design(frame, "y ~ color")
        # levels sorted: blue, green, red -> blue is the baseline
        assert d.column_names == (INTERCEPT, "color[T.green]", "color[T.red]")
        assert_array_equal(d.X[:, 1], [0, 1, 0, 0, 1, 0])
        assert_array_equal(d.X[:, 2], [1, 0, 0, 1, 0, 0])

    def test_baseline_override(self, frame):
        f = Formula.parse("y ~ color", baselines={"color": "red"})
        d = build_design(frame, f)
        assert d.column_names == (INTERCEPT, "color[T.blue]", "color[T.green]")

    def test_categorical_by_numeric_interaction(self, frame):
        d = build_design(frame, "y ~ size*x")
        assert d.column_names == (INTERCEPT, "size[T.s]", "x", "size[T.s]:x")
        assert_array_equal(d.X[:, 3], d.X[:, 1] * d.X[:, 2])
        assert d.term_slices["size:x"] == slice(3, 4)

    def test_categorical_by_categorical_interaction(self, frame):
        d = build_design(frame, "y ~ color:size")
        assert d.column_names == (
            INTERCEPT, "color[T.green]:size[T.s]", "color[T.red]:size[T.s]",
        )

    def test_no_intercept(self, frame):
        d = build_design(frame, "y ~ x - 1")
        assert d.column_names == ("x",)
        assert not d.has_intercept

    def test_intercept_override(self, frame):
        d = build_design(frame, "y ~ x", intercept=False)
        assert d.column_names == ("x",)

    def test_categorical_response(self, frame):
        d = build_design(frame, "color ~ x")
        assert d.response_is_categorical
        assert d.response_levels == ("blue", "green", "red")
        assert_array_equal(d.y, [2, 1, 0, 2, 1, 0])

    def test_one_sided(self, frame):
        d = build_design(frame, "~ x + size")
        assert d.y is None
        with pytest.raises(FormulaError):
            d.require_response()


class TestMissing:

    def test_rows_dropped_with_warning(self, mixed_frame):
        with pytest.warns(UserWarning, match="2 row\\(s\\) with missing values dropped"):
            d = build_design(mixed_frame, "y ~ x + group")
        assert d.n == 38
        assert d.n_dropped == 2
        assert 3 not in d.row_index and 7 not in d.row_index
        assert len(d.warnings) == 1

    def test_only_referenced_columns_matter(self, mixed_frame):
        with pytest.warns(UserWarning, match="1 row"):
            d = build_design(mixed_frame, "y ~ group")
        assert d.n_dropped == 1
        assert 3 in d.row_index

    def test_extra_columns_considered(self, mixed_frame):
        with pytest.warns(UserWarning):
            d = build_design(mixed_frame, "y ~ group", extra_columns=("x",))
        assert d.n_dropped == 2
        assert "x" in d.data

    def test_unused_levels_dropped(self):
        frame = Frame.from_dict({
            "y": [1.0, 2.0, 3.0, np.nan],
            "g": ["a", "b", "a", "c"],
        })
        with pytest.warns(UserWarning):
            d = build_design(frame, "y ~ g")
        assert d.column_names == (INTERCEPT, "g[T.b]")


class TestDegenerate:

    def test_unknown_column(self, frame):
        with pytest.raises(FormulaError, match="not found") as exc_info:
            build_design(frame, "y ~ weight")
        assert exc_info.value.term == "weight"

    def test_single_level_factor(self):
        frame = Frame.from_dict({"y": [1.0, 2.0], "g": ["a", "a"]})
        with pytest.raises(FormulaError, match="fewer than 2"):
            build_design(frame, "y ~ g")

    def test_more_columns_than_rows(self, frame):
        with pytest.raises(FormulaError, match="fewer rows"):
            build_design(frame.filter(np.array([True, True, False, False, False, False])),
                         "y ~ x + size")

    def test_empty_design(self, frame):
        with pytest.raises(FormulaError, match="empty design"):
            build_design(frame, "y ~ 0")

    def test_baseline_on_numeric(self, frame):
        with pytest.raises(FormulaError, match="numeric"):
            build_design(frame, Formula.parse("y ~ x", baselines={"x": "1"}))

    def test_baseline_unknown_level(self, frame):
        with pytest.raises(FormulaError, match="not a level"):
            build_design(frame, Formula.parse("y ~ color", baselines={"color": "pink"}))
