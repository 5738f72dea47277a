from __future__ import annotations

import math
from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class DiagnosticCheck:
    """
    One convergence statistic measured against its limit.

    ``bound`` says which side of ``limit`` is acceptable: ``"upper"`` means
    the statistic must not exceed it (R-hat, divergences), ``"lower"`` means
    it must reach it (effective sample size). A NaN ``value`` means the
    sampler output did not allow the statistic to be computed; such a check
    is reported but never fails.
    """

    name: str
    value: float
    limit: float
    bound: str = "upper"
    worst: str | None = None
    """Parameter with the least favourable value, when the statistic is per-parameter."""

    advice: str = ""
    """What to change in the sampler settings if the check fails."""

    def __post_init__(self) -> None:
        if self.bound not in ("upper", "lower"):
            raise ValueError(f"bound must be 'upper' or 'lower'. Got {self.bound!r}.")

    @property
    def computed(self) -> bool:
        return not math.isnan(self.value)

    @property
    def passed(self) -> bool:
        if not self.computed:
            return True
        if self.bound == "upper":
            return self.value <= self.limit
        return self.value >= self.limit

    @property
    def limit_label(self) -> str:
        return f"{'≤' if self.bound == 'upper' else '≥'} {self.limit:g}"

    def __repr__(self) -> str:
        return f"DiagnosticCheck({self.name!r}, value={self.value:g}, {self.limit_label})"


class DiagnosticReport:
    """
    Convergence statistics of one fitted model.

    Obtain via ``TrialFit.diagnostics()`` or ``diagnose(idata)``::

        report = fit.diagnostics()
        report.to_frame()
        if not report.passed:
            print(report.summary())
    """

    def __init__(self, checks: list[DiagnosticCheck], model: str) -> None:
        self._checks = tuple(checks)
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    @property
    def checks(self) -> list[DiagnosticCheck]:
        return list(self._checks)

    @property
    def failed_checks(self) -> list[DiagnosticCheck]:
        return [c for c in self._checks if not c.passed]

    @property
    def passed(self) -> bool:
        """``True`` when no statistic is past its limit."""
        return not self.failed_checks

    def to_frame(self) -> pd.DataFrame:
        """One row per statistic: ``check``, ``value``, ``limit``, ``passed``, ``worst``."""
        return pd.DataFrame(
            [(c.name, c.value, c.limit_label, c.passed, c.worst) for c in self._checks],
            columns=["check", "value", "limit", "passed", "worst"],
        )

    def summary(self) -> str:
        """Table of statistics and limits, followed by advice for anything out of range."""
        lines = [
            "",
            f"Sampler diagnostics: {self._model}",
            "─" * 62,
            f"  {'statistic':<14}{'value':>10}  {'limit':<10}{'status':<8}worst parameter",
        ]
        for c in self._checks:
            value = f"{c.value:>10.4g}" if c.computed else f"{'n/a':>10}"
            status = "ok" if c.passed else "FAIL"
            lines.append(f"  {c.name:<14}{value}  {c.limit_label:<10}{status:<8}{c.worst or ''}")
        failed = self.failed_checks
        if failed:
            lines.append("")
            for c in failed:
                lines.append(f"  {c.name}: {c.advice}")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        verdict = "converged" if self.passed else f"{len(self.failed_checks)} failed"
        return f"DiagnosticReport({self._model!r}, {verdict})"
