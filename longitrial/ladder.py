from __future__ import annotations

from collections.abc import Sequence

import pandas as pd
import structlog

from .config import AnalysisConfig
from .design import TRIAL_DESIGN, FactorialDesign
from .diagnostics import DiagnosticReport
from .models import DEFAULT_LADDER, BayesianTrialModel, ModelSpec, TrialFit
from .summarize import SummaryMode

log = structlog.get_logger(__name__)


class LadderResult:
    """
    Fits of every model in a ladder, in the order they were run.

    The tables stack each model's summary with a leading ``model`` column,
    so models can be compared row for row and against ground truth.
    """

    def __init__(self, fits: list[TrialFit]) -> None:
        self._fits = fits

    @property
    def fits(self) -> list[TrialFit]:
        return list(self._fits)

    @property
    def names(self) -> list[str]:
        return [f.name for f in self._fits]

    def __getitem__(self, name: str) -> TrialFit:
        for fit in self._fits:
            if fit.name == name:
                return fit
        raise KeyError(f"No model named {name!r}. Fitted models: {self.names}")

    def __len__(self) -> int:
        return len(self._fits)

    def _table(self, mode: SummaryMode, decimals: int | None) -> pd.DataFrame:
        frames = []
        for fit in self._fits:
            summary = fit.means() if mode is SummaryMode.MEANS else fit.contrasts()
            frames.append(summary.to_frame(decimals=decimals).assign(model=fit.name))
        table = pd.concat(frames, ignore_index=True)
        return table[["model", *[c for c in table.columns if c != "model"]]]

    def means_table(self, decimals: int | None = 2) -> pd.DataFrame:
        """Posterior group × time means of every model."""
        return self._table(SummaryMode.MEANS, decimals)

    def contrasts_table(self, decimals: int | None = 2) -> pd.DataFrame:
        """Posterior within-group contrasts of every model."""
        return self._table(SummaryMode.CONTRASTS, decimals)

    def compare(
        self,
        truth: pd.DataFrame,
        mode: SummaryMode | str = SummaryMode.CONTRASTS,
    ) -> pd.DataFrame:
        """
        Compare every model's estimates against known true values.

        Parameters
        ----------
        truth : pd.DataFrame
            Columns ``group``, ``time`` (means) or ``contrast`` (contrasts)
            and ``value``, e.g. ``SimulatedTrial.true_contrasts``.
        mode : SummaryMode or str
            Which estimates to compare.

        Returns
        -------
        pd.DataFrame
            The summary table plus ``truth``, ``bias`` (estimate minus truth)
            and ``covered`` (truth inside the interval) columns.
        """
        mode = SummaryMode.coerce(mode)
        term = "time" if mode is SummaryMode.MEANS else "contrast"
        missing = [c for c in ("group", term, "value") if c not in truth.columns]
        if missing:
            raise ValueError(f"Truth table is missing column(s) {missing}.")

        table = self._table(mode, decimals=None)
        merged = table.merge(
            truth[["group", term, "value"]].rename(columns={"value": "truth"}),
            on=["group", term],
            how="left",
        )
        merged["bias"] = merged["point_estimate"] - merged["truth"]
        merged["covered"] = (merged["lower"] <= merged["truth"]) & (merged["truth"] <= merged["upper"])
        return merged

    @property
    def diagnostics(self) -> dict[str, DiagnosticReport]:
        """Sampler diagnostics per model."""
        return {fit.name: fit.diagnostics() for fit in self._fits}

    def summary(self) -> str:
        """Contrast estimates of every model side by side, flagging fits that did not converge."""
        table = self.contrasts_table(decimals=2)
        reports = self.diagnostics
        lines = ["", "Model Ladder: within-group contrasts", "─" * 72]
        for name, rows in table.groupby("model", sort=False):
            failed = reports[name].failed_checks
            flag = f"  (not converged: {', '.join(c.name for c in failed)})" if failed else ""
            lines.append(f"  {name}{flag}")
            for _, r in rows.iterrows():
                lines.append(
                    f"    {r['group']:<14}{r['contrast']:<8}{r['point_estimate']:>8.2f}   "
                    f"[{r['lower']:>6.2f}, {r['upper']:>6.2f}]"
                )
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


class ModelLadder:
    """
    Fits a sequence of increasingly sophisticated models to the same data.

    Every model shares one ``AnalysisConfig``, so differences between rungs
    come from the model specs alone. Fits are independent of each other and
    run one after another.

    Example::

        trial = TrialSimulator().simulate(seed=7)
        result = ModelLadder(config=AnalysisConfig(draws=1000)).run(trial.data)
        result.compare(trial.true_contrasts)
    """

    def __init__(
        self,
        specs: Sequence[ModelSpec] = DEFAULT_LADDER,
        design: FactorialDesign = TRIAL_DESIGN,
        config: AnalysisConfig | None = None,
    ) -> None:
        if not specs:
            raise ValueError("A model ladder needs at least one model spec.")
        names = [s.name for s in specs]
        if len(set(names)) != len(names):
            raise ValueError(f"Model spec names must be unique. Got {names}.")
        self._specs = tuple(specs)
        self._design = design
        self._config = config or AnalysisConfig()

    @property
    def specs(self) -> list[ModelSpec]:
        return list(self._specs)

    def run(self, data: pd.DataFrame) -> LadderResult:
        """Fit every model spec to ``data``, in order."""
        fits = []
        for i, spec in enumerate(self._specs, start=1):
            log.info("ladder step", step=i, of=len(self._specs), model=spec.name)
            model = BayesianTrialModel(spec, design=self._design, config=self._config)
            fits.append(model.fit(data))
        return LadderResult(fits)
