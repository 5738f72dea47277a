import numpy as np
import pandas as pd
import pytest

from longitrial import TRIAL_DESIGN, DesignError, FactorialDesign


class TestTreatmentCoding:
    def test_trial_design_coefficients(self):
        assert TRIAL_DESIGN.coefficients == [
            "intercept",
            "time[t2]",
            "time[t3]",
            "group[intervention]",
            "group[intervention]:time[t2]",
            "group[intervention]:time[t3]",
        ]

    def test_cell_weights(self):
        expected = {
            ("control", "t1"): [1, 0, 0, 0, 0, 0],
            ("control", "t2"): [1, 1, 0, 0, 0, 0],
            ("control", "t3"): [1, 0, 1, 0, 0, 0],
            ("intervention", "t1"): [1, 0, 0, 1, 0, 0],
            ("intervention", "t2"): [1, 1, 0, 1, 1, 0],
            ("intervention", "t3"): [1, 0, 1, 1, 0, 1],
        }
        for (g, t), w in expected.items():
            np.testing.assert_array_equal(TRIAL_DESIGN.weights(g, t), w)

    def test_contrast_weights(self):
        np.testing.assert_array_equal(
            TRIAL_DESIGN.contrast_weights("intervention", "t3", "t2"),
            [0, -1, 1, 0, -1, 1],
        )
        np.testing.assert_array_equal(
            TRIAL_DESIGN.contrast_weights("control", "t3", "t1"),
            [0, 0, 1, 0, 0, 0],
        )

    def test_contrast_pairs(self):
        assert TRIAL_DESIGN.contrast_pairs == [("t2", "t1"), ("t3", "t1"), ("t3", "t2")]

    def test_larger_design(self):
        design = FactorialDesign.treatment_coded(["a", "b", "c"], ["pre", "mid", "post", "late"])
        assert design.n_coefficients == 1 + 3 + 2 + 6
        assert len(design.cells) == 12
        assert len(design.contrast_pairs) == 6
        # reference cell is the intercept alone
        np.testing.assert_array_equal(design.weights("a", "pre"), np.eye(12)[0])

    def test_weights_are_copies(self):
        w = TRIAL_DESIGN.weights("control", "t1")
        w[:] = 99
        assert TRIAL_DESIGN.weights("control", "t1")[0] == 1

    def test_unknown_cell_raises(self):
        with pytest.raises(KeyError, match="placebo"):
            TRIAL_DESIGN.weights("placebo", "t1")

    def test_repr_lists_cells(self):
        text = repr(TRIAL_DESIGN)
        assert "intervention @ t3 = intercept + time[t3]" in text


class TestDesignMatrix:
    def test_rows_follow_cells(self):
        df = pd.DataFrame({"group": ["intervention", "control"], "time": ["t2", "t3"]})
        X = TRIAL_DESIGN.design_matrix(df)
        np.testing.assert_array_equal(X[0], TRIAL_DESIGN.weights("intervention", "t2"))
        np.testing.assert_array_equal(X[1], TRIAL_DESIGN.weights("control", "t3"))

    def test_unknown_level_raises(self):
        df = pd.DataFrame({"group": ["placebo"], "time": ["t1"]})
        with pytest.raises(ValueError, match="placebo"):
            TRIAL_DESIGN.design_matrix(df)

    def test_missing_level_raises_value_error(self):
        df = pd.DataFrame({"group": ["control", np.nan], "time": ["t1", "t2"]})
        with pytest.raises(ValueError, match="missing values"):
            TRIAL_DESIGN.design_matrix(df)

    def test_missing_column_raises(self):
        df = pd.DataFrame({"group": ["control"]})
        with pytest.raises(ValueError, match="Time column"):
            TRIAL_DESIGN.design_matrix(df)


class TestValidation:
    def test_single_level_raises(self):
        with pytest.raises(DesignError, match="two group levels"):
            FactorialDesign.treatment_coded(["only"], ["t1", "t2"])

    def test_duplicate_levels_raise(self):
        with pytest.raises(DesignError, match="Duplicate time"):
            FactorialDesign.treatment_coded(["a", "b"], ["t1", "t1"])

    def test_wrong_weight_length_raises(self):
        cells = {(g, t): [1, 0] for g in ["a", "b"] for t in ["x", "y"]}
        cells[("b", "y")] = [1, 0, 0]
        with pytest.raises(DesignError, match="3 weights"):
            FactorialDesign(["c0", "c1"], ["a", "b"], ["x", "y"], cells)

    def test_missing_cell_raises(self):
        cells = {("a", "x"): [1.0], ("a", "y"): [1.0], ("b", "x"): [1.0]}
        with pytest.raises(DesignError, match="No weights"):
            FactorialDesign(["c0"], ["a", "b"], ["x", "y"], cells)
