from __future__ import annotations

from collections.abc import Mapping

import numpy as np
import pandas as pd
import structlog
from scipy import stats

from .design import TRIAL_DESIGN, FactorialDesign

log = structlog.get_logger(__name__)

DEFAULT_CELL_MEANS: dict[tuple[str, str], float] = {
    ("control", "t1"): 20.0,
    ("control", "t2"): 21.0,
    ("control", "t3"): 21.5,
    ("intervention", "t1"): 20.0,
    ("intervention", "t2"): 23.0,
    ("intervention", "t3"): 26.0,
}


class SimulatedTrial:
    """
    A simulated longitudinal trial together with its ground truth.

    ``data`` is the long observation table (``subject_id``, ``group``,
    ``time``, ``response``) with missing responses as NaN. ``true_means``
    and ``true_contrasts`` follow the same row order as the posterior
    summaries, so they can be compared row for row.
    """

    def __init__(
        self,
        data: pd.DataFrame,
        cell_means: Mapping[tuple[str, str], float],
        design: FactorialDesign,
        n_missing: int,
        n_outliers: int,
    ) -> None:
        self._data = data
        self._cell_means = dict(cell_means)
        self._design = design
        self._n_missing = n_missing
        self._n_outliers = n_outliers

    @property
    def data(self) -> pd.DataFrame:
        return self._data.copy()

    @property
    def design(self) -> FactorialDesign:
        return self._design

    @property
    def n_missing(self) -> int:
        """Number of responses removed after simulation."""
        return self._n_missing

    @property
    def n_outliers(self) -> int:
        """Number of observed responses shifted into outliers."""
        return self._n_outliers

    @property
    def true_means(self) -> pd.DataFrame:
        """True cell means, columns ``group``, ``time``, ``value``."""
        return pd.DataFrame(
            [(g, t, self._cell_means[(g, t)]) for g, t in self._design.cells],
            columns=["group", "time", "value"],
        )

    @property
    def true_contrasts(self) -> pd.DataFrame:
        """True within-group changes, columns ``group``, ``contrast``, ``value``."""
        rows = []
        for g in self._design.groups:
            for later, earlier in self._design.contrast_pairs:
                value = self._cell_means[(g, later)] - self._cell_means[(g, earlier)]
                rows.append((g, f"{later}-{earlier}", value))
        return pd.DataFrame(rows, columns=["group", "contrast", "value"])

    def __repr__(self) -> str:
        n_subjects = self._data["subject_id"].nunique()
        return (
            f"SimulatedTrial({n_subjects} subjects, {len(self._data)} rows, "
            f"{self._n_missing} missing, {self._n_outliers} outliers)"
        )


class TrialSimulator:
    """
    Generates a two-arm, repeated-measures trial with known group × time means.

    Each response is::

        cell mean + subject intercept + truncated-normal noise

    The noise is normal with standard deviation ``noise_sd``, truncated to
    ``[lower, upper]``. After simulation, non-baseline responses go missing
    completely at random with probability ``missing_rate``, and a fraction
    ``outlier_rate`` of the observed responses is shifted by
    ``outlier_shift``.

    Example::

        trial = TrialSimulator(n_per_group=60, missing_rate=0.1).simulate(seed=1)
        trial.data.head()
    """

    def __init__(
        self,
        n_per_group: int = 50,
        cell_means: Mapping[tuple[str, str], float] | None = None,
        subject_sd: float = 2.0,
        noise_sd: float = 3.0,
        lower: float = -6.0,
        upper: float = 6.0,
        missing_rate: float = 0.1,
        outlier_rate: float = 0.03,
        outlier_shift: float = 15.0,
        design: FactorialDesign = TRIAL_DESIGN,
    ) -> None:
        self._n_per_group = n_per_group
        self._cell_means = dict(DEFAULT_CELL_MEANS if cell_means is None else cell_means)
        self._subject_sd = subject_sd
        self._noise_sd = noise_sd
        self._lower = lower
        self._upper = upper
        self._missing_rate = missing_rate
        self._outlier_rate = outlier_rate
        self._outlier_shift = outlier_shift
        self._design = design
        self._validate_inputs()

    def _validate_inputs(self) -> None:
        if self._n_per_group < 1:
            raise ValueError(f"n_per_group must be positive. Got {self._n_per_group}.")
        if self._noise_sd <= 0:
            raise ValueError(f"noise_sd must be positive. Got {self._noise_sd}.")
        if self._subject_sd < 0:
            raise ValueError(f"subject_sd must be non-negative. Got {self._subject_sd}.")
        if not self._lower < self._upper:
            raise ValueError(
                f"Truncation bounds must satisfy lower < upper. Got [{self._lower}, {self._upper}]."
            )
        for label, rate in [("missing_rate", self._missing_rate), ("outlier_rate", self._outlier_rate)]:
            if not 0.0 <= rate < 1.0:
                raise ValueError(f"{label} must be in [0, 1). Got {rate}.")
        missing = [c for c in self._design.cells if c not in self._cell_means]
        if missing:
            raise ValueError(f"cell_means has no value for cells: {missing}")

    def simulate(self, seed: int | None = None) -> SimulatedTrial:
        """Draw one trial dataset. The same ``seed`` always gives the same data."""
        rng = np.random.default_rng(seed)
        design = self._design
        groups, times = design.groups, design.times
        n_subjects = self._n_per_group * len(groups)

        subject_group = [g for g in groups for _ in range(self._n_per_group)]
        subject_effect = rng.normal(0.0, self._subject_sd, size=n_subjects)

        a = self._lower / self._noise_sd
        b = self._upper / self._noise_sd
        noise = stats.truncnorm.rvs(
            a, b, loc=0.0, scale=self._noise_sd,
            size=(n_subjects, len(times)), random_state=rng,
        )

        records = []
        for i in range(n_subjects):
            g = subject_group[i]
            for j, t in enumerate(times):
                response = self._cell_means[(g, t)] + subject_effect[i] + noise[i, j]
                records.append((i + 1, g, t, response))
        data = pd.DataFrame(records, columns=["subject_id", "group", "time", "response"])

        # Baseline visits stay observed.
        follow_up = (data["time"] != times[0]).to_numpy()
        drop = follow_up & (rng.random(len(data)) < self._missing_rate)
        data.loc[drop, "response"] = np.nan

        observed = np.flatnonzero(data["response"].notna().to_numpy())
        n_outliers = int(round(self._outlier_rate * len(observed)))
        if n_outliers:
            idx = rng.choice(observed, size=n_outliers, replace=False)
            data.loc[idx, "response"] += self._outlier_shift

        log.info(
            "trial simulated",
            subjects=n_subjects,
            rows=len(data),
            missing=int(drop.sum()),
            outliers=n_outliers,
            seed=seed,
        )
        return SimulatedTrial(
            data,
            self._cell_means,
            design,
            n_missing=int(drop.sum()),
            n_outliers=n_outliers,
        )
