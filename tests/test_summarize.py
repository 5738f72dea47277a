import numpy as np
import pandas as pd
import pytest

from longitrial import (
    TRIAL_DESIGN,
    InvalidModeError,
    PosteriorContrastSummarizer,
    ShapeError,
    SummaryMode,
    summarize_draws,
)


RNG = np.random.default_rng(42)
N = 4_000
TRUE_COEFS = np.array([20.0, 1.0, 1.5, 0.0, 2.0, 4.5])


def make_draws(n=N, coefs=TRUE_COEFS, sd=0.5):
    """Independent normal draws around known coefficients."""
    return coefs + sd * RNG.normal(size=(n, len(coefs)))


SINGLE = np.array([[10.0, 2.0, 5.0, 1.0, 0.0, 1.0]])


class TestSummarizeMeans:
    def test_single_draw_scenario(self):
        result = summarize_draws(SINGLE, mode="means")
        expected = {
            ("control", "t1"): 10, ("control", "t2"): 12, ("control", "t3"): 15,
            ("intervention", "t1"): 11, ("intervention", "t2"): 13, ("intervention", "t3"): 17,
        }
        for (group, time), value in expected.items():
            row = result.get(group, time)
            assert row.point_estimate == pytest.approx(value)
            assert row.lower == pytest.approx(value)
            assert row.upper == pytest.approx(value)

    def test_row_order_and_coverage(self):
        result = summarize_draws(make_draws(), mode="means")
        keys = [(r.group, r.term) for r in result]
        assert keys == [
            ("control", "t1"), ("control", "t2"), ("control", "t3"),
            ("intervention", "t1"), ("intervention", "t2"), ("intervention", "t3"),
        ]
        assert len(result) == 6

    def test_recovers_cell_means(self):
        result = summarize_draws(make_draws(), mode="means")
        expected = TRIAL_DESIGN.cell_matrix() @ TRUE_COEFS
        for row, value in zip(result, expected):
            assert abs(row.point_estimate - value) < 0.1
            assert row.contains(value)

    def test_point_estimate_is_mean_not_median(self):
        draws = np.tile(SINGLE, (4, 1))
        draws[:, 0] = [0.0, 0.0, 0.0, 100.0]
        row = summarize_draws(draws, mode="means").get("control", "t1")
        assert row.point_estimate == pytest.approx(25.0)

    def test_frame_columns_and_rounding(self):
        frame = summarize_draws(make_draws(), mode="means").to_frame()
        assert list(frame.columns) == ["group", "time", "point_estimate", "lower", "upper"]
        assert (frame["point_estimate"] == frame["point_estimate"].round(2)).all()

    def test_frame_full_precision(self):
        draws = make_draws()
        frame = summarize_draws(draws, mode="means").to_frame(decimals=None)
        assert frame.loc[0, "point_estimate"] == pytest.approx(draws[:, 0].mean())


class TestSummarizeContrasts:
    def test_single_draw_scenario(self):
        result = summarize_draws(SINGLE, mode="contrasts")
        expected = {
            ("control", "t2-t1"): 2, ("control", "t3-t1"): 5, ("control", "t3-t2"): 3,
            ("intervention", "t2-t1"): 2, ("intervention", "t3-t1"): 6, ("intervention", "t3-t2"): 4,
        }
        for (group, label), value in expected.items():
            row = result.get(group, label)
            assert row.point_estimate == pytest.approx(value)
            assert row.width == pytest.approx(0.0)

    def test_row_order_and_coverage(self):
        result = summarize_draws(make_draws(), mode=SummaryMode.CONTRASTS)
        keys = [(r.group, r.term) for r in result]
        assert keys == [
            ("control", "t2-t1"), ("control", "t3-t1"), ("control", "t3-t2"),
            ("intervention", "t2-t1"), ("intervention", "t3-t1"), ("intervention", "t3-t2"),
        ]

    def test_contrasts_add_up(self):
        result = summarize_draws(make_draws(), mode="contrasts")
        for group in TRIAL_DESIGN.groups:
            t21 = result.get(group, "t2-t1").point_estimate
            t31 = result.get(group, "t3-t1").point_estimate
            t32 = result.get(group, "t3-t2").point_estimate
            assert t31 == pytest.approx(t21 + t32, abs=1e-9)

    def test_intervention_contrasts_match_derivation(self):
        draws = make_draws()
        b = draws.T
        result = summarize_draws(draws, mode="contrasts")
        assert result.get("intervention", "t2-t1").point_estimate == pytest.approx((b[1] + b[4]).mean())
        assert result.get("intervention", "t3-t1").point_estimate == pytest.approx((b[2] + b[5]).mean())
        assert result.get("intervention", "t3-t2").point_estimate == pytest.approx(
            (b[5] - b[4] + b[2] - b[1]).mean()
        )

    def test_frame_has_contrast_column(self):
        frame = summarize_draws(make_draws(), mode="contrasts").to_frame()
        assert "contrast" in frame.columns
        assert "time" not in frame.columns


class TestIntervals:
    def test_interval_brackets_estimate(self):
        draws = make_draws()
        for mode in ("means", "contrasts"):
            for row in summarize_draws(draws, mode=mode):
                assert row.lower <= row.point_estimate <= row.upper
                assert row.width >= 0

    def test_wider_mass_never_shrinks(self):
        draws = make_draws()
        narrow = summarize_draws(draws, mode="contrasts", hdi_prob=0.5)
        mid = summarize_draws(draws, mode="contrasts", hdi_prob=0.95)
        wide = summarize_draws(draws, mode="contrasts", hdi_prob=0.99)
        for a, b, c in zip(narrow, mid, wide):
            assert a.width <= b.width <= c.width

    def test_hdi_is_narrowest_for_skewed_draws(self):
        # Exponential draws: the HDI hugs zero, unlike the equal-tailed interval.
        draws = np.zeros((N, 6))
        draws[:, 0] = RNG.exponential(size=N)
        row = summarize_draws(draws, mode="means").get("control", "t1")
        equal_tailed = np.percentile(draws[:, 0], [2.5, 97.5])
        assert row.lower < equal_tailed[0]
        assert row.width <= equal_tailed[1] - equal_tailed[0]

    def test_mean_can_fall_outside_hdi(self):
        # One extreme draw pulls the mean to 10 while 99% of the mass sits at 0.
        draws = np.zeros((100, 6))
        draws[0, 0] = 1000.0
        row = summarize_draws(draws, mode="means").get("control", "t1")
        assert row.point_estimate == pytest.approx(10.0)
        assert (row.lower, row.upper) == (0.0, 0.0)
        assert not row.contains(row.point_estimate)

    def test_invalid_hdi_prob_raises(self):
        with pytest.raises(ValueError, match="hdi_prob"):
            PosteriorContrastSummarizer(hdi_prob=1.5)
        with pytest.raises(ValueError, match="hdi_prob"):
            PosteriorContrastSummarizer(hdi_prob=0.0)


class TestInputs:
    def test_idempotent(self):
        draws = make_draws()
        summarizer = PosteriorContrastSummarizer()
        assert summarizer.means(draws).rows == summarizer.means(draws).rows
        assert summarizer.contrasts(draws).rows == summarizer.contrasts(draws).rows

    def test_input_not_modified(self):
        draws = make_draws()
        before = draws.copy()
        summarize_draws(draws, mode="contrasts")
        np.testing.assert_array_equal(draws, before)

    def test_dataframe_reordered_by_name(self):
        draws = make_draws()
        frame = pd.DataFrame(draws, columns=TRIAL_DESIGN.coefficients)
        shuffled = frame[frame.columns[::-1]]
        assert summarize_draws(shuffled).rows == summarize_draws(draws).rows

    def test_nested_lists_accepted(self):
        result = summarize_draws(SINGLE.tolist(), mode="means")
        assert result.get("control", "t3").point_estimate == pytest.approx(15.0)

    def test_bogus_mode_raises(self):
        with pytest.raises(InvalidModeError, match="bogus"):
            summarize_draws(SINGLE, mode="bogus")

    def test_five_columns_raises(self):
        with pytest.raises(ShapeError, match="6 coefficient columns"):
            summarize_draws(np.ones((10, 5)))

    def test_zero_rows_raises(self):
        with pytest.raises(ShapeError, match="no samples"):
            summarize_draws(np.empty((0, 6)))

    def test_nan_draw_raises(self):
        draws = np.ones((10, 6))
        draws[3, 1] = np.nan
        with pytest.raises(ShapeError, match=r"NaN or infinite values in: time\[t2\]"):
            summarize_draws(draws)

    def test_infinite_draw_raises(self):
        draws = np.ones((10, 6))
        draws[0, 5] = np.inf
        with pytest.raises(ShapeError, match="infinite"):
            summarize_draws(draws, mode="contrasts")

    def test_one_dimensional_raises(self):
        with pytest.raises(ShapeError, match="2-D"):
            summarize_draws(np.ones(6))

    def test_mode_checked_before_shape(self):
        with pytest.raises(InvalidModeError):
            summarize_draws(np.ones((10, 5)), mode="bogus")

    def test_summary_runs(self):
        result = summarize_draws(make_draws(), mode="contrasts")
        text = result.summary()
        assert "Within-group contrasts" in text
        assert "95% HDI" in text
        assert repr(result) == text
