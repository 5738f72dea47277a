from __future__ import annotations

import arviz as az
import numpy as np

from ..config import AnalysisConfig
from ._check import DiagnosticCheck, DiagnosticReport


def _check_rhat(stats, max_rhat: float) -> DiagnosticCheck:
    """Largest split R-hat across parameters; above ``max_rhat`` the chains have not mixed."""
    rhat = stats["r_hat"].astype(float)
    if rhat.isna().all():
        return DiagnosticCheck(name="R-hat", value=float("nan"), limit=max_rhat)
    return DiagnosticCheck(
        name="R-hat",
        value=float(rhat.max()),
        limit=max_rhat,
        worst=str(rhat.idxmax()),
        advice="chains disagree; increase tune/draws or reparameterise.",
    )


def _check_ess(stats, min_ess: float) -> DiagnosticCheck:
    """Smallest bulk effective sample size across parameters."""
    ess = stats["ess_bulk"].astype(float)
    return DiagnosticCheck(
        name="Bulk ESS",
        value=float(ess.min()),
        limit=min_ess,
        bound="lower",
        worst=str(ess.idxmin()),
        advice="interval endpoints may be unstable; draw more samples.",
    )


def _check_divergences(idata) -> DiagnosticCheck:
    """Divergent transitions mark posterior regions NUTS could not explore."""
    if "sample_stats" not in idata.groups() or "diverging" not in idata.sample_stats:
        return DiagnosticCheck(name="Divergences", value=float("nan"), limit=0)
    return DiagnosticCheck(
        name="Divergences",
        value=float(np.sum(idata.sample_stats["diverging"].to_numpy())),
        limit=0,
        advice="raise target_accept or use a non-centred parameterisation.",
    )


def diagnose(
    idata,
    config: AnalysisConfig | None = None,
    var_names: list[str] | None = None,
    model: str = "model",
) -> DiagnosticReport:
    """
    Run convergence checks on a fitted model's ``InferenceData``.

    - **R-hat**: the largest split R-hat must not exceed ``config.max_rhat``.
    - **Bulk ESS**: the smallest bulk effective sample size must reach
      ``config.min_ess``.
    - **Divergences**: there must be no divergent transitions.

    Parameters
    ----------
    idata : az.InferenceData
        Posterior returned by ``pymc.sample``.
    var_names : list of str, optional
        Parameters to check. Defaults to every posterior variable.
    """
    config = config or AnalysisConfig()
    stats = az.summary(idata, var_names=var_names, kind="diagnostics")
    checks = [
        _check_rhat(stats, config.max_rhat),
        _check_ess(stats, config.min_ess),
        _check_divergences(idata),
    ]
    return DiagnosticReport(checks=checks, model=model)
