from __future__ import annotations

from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd

from ._exceptions import DesignError


class FactorialDesign:
    """
    A group × time factorial design expressed as coefficient weights.

    Every (group, time) cell of the design is a fixed linear combination of
    the regression coefficients. The combination is stored explicitly as a
    weight vector, so cell means and within-group contrasts can be derived
    from posterior draws by a single matrix product, whatever the coding.

    Most users want :meth:`treatment_coded`, or the ready-made
    ``TRIAL_DESIGN`` for the two-arm, three-visit trial::

        design = FactorialDesign.treatment_coded(
            groups=["control", "intervention"],
            times=["t1", "t2", "t3"],
        )
        design.weights("intervention", "t3")
        # array([1., 0., 1., 1., 0., 1.])
    """

    def __init__(
        self,
        coefficients: Sequence[str],
        groups: Sequence[str],
        times: Sequence[str],
        cells: Mapping[tuple[str, str], Sequence[float]],
    ) -> None:
        self._coefficients = tuple(coefficients)
        self._groups = tuple(groups)
        self._times = tuple(times)
        self._cells: dict[tuple[str, str], np.ndarray] = {}
        self._validate_levels()

        for key, w in cells.items():
            vec = np.asarray(w, dtype=float)
            if vec.shape != (len(self._coefficients),):
                raise DesignError(
                    f"Cell {key} has {vec.size} weights; expected one per "
                    f"coefficient ({len(self._coefficients)})."
                )
            self._cells[tuple(key)] = vec

        missing = [c for c in self.cells if c not in self._cells]
        if missing:
            raise DesignError(f"No weights given for cells: {missing}")
        extra = sorted(set(self._cells) - set(self.cells))
        if extra:
            raise DesignError(f"Weights given for unknown cells: {extra}")

    @classmethod
    def treatment_coded(cls, groups: Sequence[str], times: Sequence[str]) -> FactorialDesign:
        """
        Build a treatment-coded group × time interaction design.

        The first level of each factor is the reference. Coefficients are
        ordered as intercept, time main effects, group main effects, then
        group × time interactions (group-major)::

            intercept, time[t2], time[t3], group[intervention],
            group[intervention]:time[t2], group[intervention]:time[t3]
        """
        groups, times = tuple(groups), tuple(times)
        time_terms = [f"time[{t}]" for t in times[1:]]
        group_terms = [f"group[{g}]" for g in groups[1:]]
        inter_terms = [f"group[{g}]:time[{t}]" for g in groups[1:] for t in times[1:]]
        coefficients = ["intercept", *time_terms, *group_terms, *inter_terms]
        index = {name: i for i, name in enumerate(coefficients)}

        cells = {}
        for g in groups:
            for t in times:
                w = np.zeros(len(coefficients))
                w[index["intercept"]] = 1.0
                if t != times[0]:
                    w[index[f"time[{t}]"]] = 1.0
                if g != groups[0]:
                    w[index[f"group[{g}]"]] = 1.0
                if t != times[0] and g != groups[0]:
                    w[index[f"group[{g}]:time[{t}]"]] = 1.0
                cells[(g, t)] = w

        return cls(coefficients, groups, times, cells)

    def _validate_levels(self) -> None:
        for label, levels in [("group", self._groups), ("time", self._times)]:
            if len(levels) < 2:
                raise DesignError(f"A factorial design needs at least two {label} levels.")
            if len(set(levels)) != len(levels):
                raise DesignError(f"Duplicate {label} levels: {list(levels)}")
        if len(set(self._coefficients)) != len(self._coefficients):
            raise DesignError(f"Duplicate coefficient names: {list(self._coefficients)}")

    # ── Structure ─────────────────────────────────────────────────────────────

    @property
    def coefficients(self) -> list[str]:
        """Coefficient names, in the column order draws must follow."""
        return list(self._coefficients)

    @property
    def n_coefficients(self) -> int:
        return len(self._coefficients)

    @property
    def groups(self) -> list[str]:
        return list(self._groups)

    @property
    def times(self) -> list[str]:
        return list(self._times)

    @property
    def cells(self) -> list[tuple[str, str]]:
        """All (group, time) cells, group-major, in level order."""
        return [(g, t) for g in self._groups for t in self._times]

    @property
    def contrast_pairs(self) -> list[tuple[str, str]]:
        """
        Within-group timepoint pairs as ``(later, earlier)``.

        For three timepoints: ``t2-t1``, ``t3-t1``, ``t3-t2``.
        """
        return [
            (self._times[j], self._times[i])
            for j in range(1, len(self._times))
            for i in range(j)
        ]

    # ── Weights ───────────────────────────────────────────────────────────────

    def weights(self, group: str, time: str) -> np.ndarray:
        """Weight vector deriving the (group, time) cell mean from the coefficients."""
        try:
            return self._cells[(group, time)].copy()
        except KeyError:
            raise KeyError(
                f"Unknown cell ({group!r}, {time!r}). Known cells: {self.cells}"
            ) from None

    def contrast_weights(self, group: str, later: str, earlier: str) -> np.ndarray:
        """Weight vector for the within-group change from ``earlier`` to ``later``."""
        return self.weights(group, later) - self.weights(group, earlier)

    def cell_matrix(self) -> np.ndarray:
        """All cell weight vectors stacked as rows, in ``cells`` order."""
        return np.vstack([self._cells[c] for c in self.cells])

    def contrast_matrix(self) -> np.ndarray:
        """All contrast weight vectors stacked as rows, group-major, in ``contrast_pairs`` order."""
        return np.vstack([
            self.contrast_weights(g, later, earlier)
            for g in self._groups
            for later, earlier in self.contrast_pairs
        ])

    def design_matrix(
        self,
        data: pd.DataFrame,
        group: str = "group",
        time: str = "time",
    ) -> np.ndarray:
        """
        Model matrix for an observation table: one row of cell weights per observation.

        Raises
        ------
        ``ValueError``
            If a column is missing, has missing values, or contains a level the
            design does not know.
        """
        for label, col, levels in [("Group", group, self._groups), ("Time", time, self._times)]:
            if col not in data.columns:
                raise ValueError(f"{label} column '{col}' not found in dataframe.")
            if data[col].isna().any():
                raise ValueError(f"{label} column '{col}' has missing values.")
            unknown = sorted(set(data[col].astype(str)) - set(levels))
            if unknown:
                raise ValueError(
                    f"{label} column '{col}' has levels not in the design: {unknown}. "
                    f"Known levels: {list(levels)}"
                )

        lookup = {cell: i for i, cell in enumerate(self.cells)}
        rows = [lookup[(str(g), str(t))] for g, t in zip(data[group], data[time])]
        return self.cell_matrix()[rows]

    # ── Display ───────────────────────────────────────────────────────────────

    def __repr__(self) -> str:
        lines = [f"FactorialDesign ({len(self._groups)} groups × {len(self._times)} times):"]
        for g, t in self.cells:
            terms = [
                name for name, w in zip(self._coefficients, self._cells[(g, t)]) if w != 0
            ]
            lines.append(f"  {g} @ {t} = {' + '.join(terms)}")
        return "\n".join(lines)


TRIAL_DESIGN = FactorialDesign.treatment_coded(
    groups=["control", "intervention"],
    times=["t1", "t2", "t3"],
)
