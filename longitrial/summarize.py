from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import arviz as az
import numpy as np
import pandas as pd

from ._exceptions import InvalidModeError, ShapeError
from .design import TRIAL_DESIGN, FactorialDesign


class SummaryMode(str, Enum):
    """What to derive from coefficient draws."""

    MEANS = "means"
    """Group × time cell means."""

    CONTRASTS = "contrasts"
    """Within-group changes between timepoints."""

    @classmethod
    def coerce(cls, mode: SummaryMode | str) -> SummaryMode:
        """Return ``mode`` as a ``SummaryMode``, raising ``InvalidModeError`` if it is not one."""
        if isinstance(mode, cls):
            return mode
        try:
            return cls(mode)
        except ValueError:
            valid = [m.value for m in cls]
            raise InvalidModeError(
                f"Unsupported summary mode {mode!r}. Use one of {valid}."
            ) from None


@dataclass(frozen=True)
class SummaryRow:
    """
    One derived quantity: a cell mean or a within-group contrast.

    ``term`` is the timepoint (``"t2"``) for means and the pair label
    (``"t3-t1"``) for contrasts.
    """

    group: str
    term: str
    point_estimate: float
    """Posterior mean of the derived draws."""

    lower: float
    """Lower bound of the highest-density interval."""

    upper: float
    """Upper bound of the highest-density interval."""

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def contains(self, value: float) -> bool:
        """``True`` if ``value`` lies inside the closed interval."""
        return self.lower <= value <= self.upper


class PosteriorSummary:
    """
    Point estimates and highest-density intervals for every cell or contrast.

    Rows keep full precision; ``to_frame()`` and ``summary()`` round for
    display only.

    The interval is the highest-density region of the draws and is found
    independently of the mean. For unimodal, roughly symmetric posteriors
    the mean lies inside it, but for strongly skewed or multimodal draws it
    can fall outside, so ``row.contains(row.point_estimate)`` is not
    guaranteed.
    """

    def __init__(self, rows: list[SummaryRow], mode: SummaryMode, hdi_prob: float) -> None:
        self._rows = rows
        self._mode = mode
        self._hdi_prob = hdi_prob

    @property
    def rows(self) -> list[SummaryRow]:
        return list(self._rows)

    @property
    def mode(self) -> SummaryMode:
        return self._mode

    @property
    def hdi_prob(self) -> float:
        return self._hdi_prob

    @property
    def _term_column(self) -> str:
        return "time" if self._mode is SummaryMode.MEANS else "contrast"

    def get(self, group: str, term: str) -> SummaryRow:
        """Look up the row for ``group`` and timepoint / contrast label ``term``."""
        for row in self._rows:
            if row.group == group and row.term == term:
                return row
        raise KeyError(f"No {self._term_column} row for ({group!r}, {term!r}).")

    def to_frame(self, decimals: int | None = 2) -> pd.DataFrame:
        """
        Rows as a dataframe with columns ``group``, ``time`` (or ``contrast``),
        ``point_estimate``, ``lower`` and ``upper``.

        Pass ``decimals=None`` to keep full precision.
        """
        frame = pd.DataFrame(
            [(r.group, r.term, r.point_estimate, r.lower, r.upper) for r in self._rows],
            columns=["group", self._term_column, "point_estimate", "lower", "upper"],
        )
        if decimals is not None:
            frame = frame.round({"point_estimate": decimals, "lower": decimals, "upper": decimals})
        return frame

    def summary(self) -> str:
        """Concise table of estimates and intervals."""
        title = "Group × time means" if self._mode is SummaryMode.MEANS else "Within-group contrasts"
        pct = f"{self._hdi_prob:.0%}"
        lines = [
            "",
            f"{title}  (posterior mean, {pct} HDI)",
            "─" * 54,
            f"  {'group':<14}{self._term_column:<10}{'estimate':>10}   {pct + ' HDI':>16}",
        ]
        for r in self._rows:
            lines.append(
                f"  {r.group:<14}{r.term:<10}{r.point_estimate:>10.2f}   "
                f"[{r.lower:>6.2f}, {r.upper:>6.2f}]"
            )
        lines.append("")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    def __repr__(self) -> str:
        return self.summary()


class PosteriorContrastSummarizer:
    """
    Turns joint posterior draws of regression coefficients into group × time
    means and within-group contrasts.

    Each derived quantity is a fixed linear combination of the coefficients
    (see ``FactorialDesign``), applied draw by draw. It is summarised by its
    posterior mean and the narrowest interval holding ``hdi_prob`` of the
    draws.

    Example::

        summarizer = PosteriorContrastSummarizer()
        means = summarizer.summarize(draws, mode="means")
        print(means.summary())
    """

    def __init__(self, design: FactorialDesign = TRIAL_DESIGN, hdi_prob: float = 0.95) -> None:
        if not 0.0 < hdi_prob < 1.0:
            raise ValueError(f"hdi_prob must be in (0, 1). Got {hdi_prob}.")
        self._design = design
        self._hdi_prob = hdi_prob

    @property
    def design(self) -> FactorialDesign:
        return self._design

    @property
    def hdi_prob(self) -> float:
        return self._hdi_prob

    def summarize(self, draws, mode: SummaryMode | str = SummaryMode.MEANS) -> PosteriorSummary:
        """
        Summarise ``draws`` as cell means or within-group contrasts.

        Parameters
        ----------
        draws : array-like or pd.DataFrame
            Samples × coefficients. A dataframe carrying every coefficient
            name of the design is reordered by name; anything else is read
            positionally in design order.
        mode : SummaryMode or str
            ``"means"`` or ``"contrasts"``.

        Raises
        ------
        ``InvalidModeError``
            If ``mode`` is not a supported summary mode.
        ``ShapeError``
            If ``draws`` is not two-dimensional, is empty, or has the wrong
            number of coefficient columns.
        """
        mode = SummaryMode.coerce(mode)
        matrix = self._as_matrix(draws)
        design = self._design

        if mode is SummaryMode.MEANS:
            weights = design.cell_matrix()
            keys = design.cells
        else:
            weights = design.contrast_matrix()
            keys = [
                (g, f"{later}-{earlier}")
                for g in design.groups
                for later, earlier in design.contrast_pairs
            ]

        derived = matrix @ weights.T
        rows = [
            self._summarize_column(derived[:, i], group, term)
            for i, (group, term) in enumerate(keys)
        ]
        return PosteriorSummary(rows, mode, self._hdi_prob)

    def means(self, draws) -> PosteriorSummary:
        return self.summarize(draws, SummaryMode.MEANS)

    def contrasts(self, draws) -> PosteriorSummary:
        return self.summarize(draws, SummaryMode.CONTRASTS)

    def _as_matrix(self, draws) -> np.ndarray:
        names = self._design.coefficients
        if isinstance(draws, pd.DataFrame) and set(names) <= set(draws.columns):
            draws = draws[names]
        matrix = np.asarray(draws, dtype=float)

        if matrix.ndim != 2:
            raise ShapeError(
                f"Draws must be a 2-D samples × coefficients matrix. Got {matrix.ndim} dimension(s)."
            )
        if matrix.shape[1] != len(names):
            raise ShapeError(
                f"Draws must have exactly {len(names)} coefficient columns "
                f"({', '.join(names)}). Got {matrix.shape[1]}."
            )
        if matrix.shape[0] == 0:
            raise ShapeError("Draws matrix has no samples.")
        if not np.isfinite(matrix).all():
            bad = sorted({names[j] for j in np.nonzero(~np.isfinite(matrix))[1]})
            raise ShapeError(f"Draws contain NaN or infinite values in: {', '.join(bad)}.")
        return matrix

    def _summarize_column(self, samples: np.ndarray, group: str, term: str) -> SummaryRow:
        lower, upper = az.hdi(samples, hdi_prob=self._hdi_prob)
        return SummaryRow(
            group=group,
            term=term,
            point_estimate=float(np.mean(samples)),
            lower=float(lower),
            upper=float(upper),
        )


def summarize_draws(
    draws,
    mode: SummaryMode | str = SummaryMode.MEANS,
    hdi_prob: float = 0.95,
    design: FactorialDesign = TRIAL_DESIGN,
) -> PosteriorSummary:
    """Shorthand for ``PosteriorContrastSummarizer(design, hdi_prob).summarize(draws, mode)``."""
    return PosteriorContrastSummarizer(design, hdi_prob).summarize(draws, mode)
