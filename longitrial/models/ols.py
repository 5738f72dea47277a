from __future__ import annotations

import pandas as pd
import statsmodels.api as sm

from ..design import TRIAL_DESIGN, FactorialDesign
from ._data import check_trial_data


class ReferenceFit:
    """
    Ordinary least squares fit of the fixed-effects design on complete cases.

    Serves as the frequentist reference point for the Bayesian ladder: same
    coefficients, same derived means and contrasts, no priors, no random
    effects, no imputation.
    """

    def __init__(self, result, design: FactorialDesign) -> None:
        self._result = result
        self._design = design

    @property
    def params(self) -> pd.Series:
        """Coefficient estimates, indexed by design coefficient name."""
        return self._result.params.copy()

    @property
    def conf_int(self) -> pd.DataFrame:
        """95% confidence intervals, columns ``lower`` and ``upper``."""
        ci = self._result.conf_int()
        ci.columns = ["lower", "upper"]
        return ci

    @property
    def n_observations(self) -> int:
        return int(self._result.nobs)

    @property
    def statsmodels_result(self):
        """The underlying statsmodels OLS result, for full diagnostics."""
        return self._result

    @property
    def means(self) -> pd.DataFrame:
        """Estimated group × time means, columns ``group``, ``time``, ``value``."""
        values = self._design.cell_matrix() @ self._result.params.to_numpy()
        return pd.DataFrame(
            [(g, t, float(v)) for (g, t), v in zip(self._design.cells, values)],
            columns=["group", "time", "value"],
        )

    @property
    def contrasts(self) -> pd.DataFrame:
        """Estimated within-group changes, columns ``group``, ``contrast``, ``value``."""
        values = self._design.contrast_matrix() @ self._result.params.to_numpy()
        keys = [
            (g, f"{later}-{earlier}")
            for g in self._design.groups
            for later, earlier in self._design.contrast_pairs
        ]
        return pd.DataFrame(
            [(g, c, float(v)) for (g, c), v in zip(keys, values)],
            columns=["group", "contrast", "value"],
        )

    def summary(self) -> str:
        """Concise table of OLS coefficient estimates."""
        ci = self.conf_int
        lines = [
            "",
            "OLS Reference Fit (complete cases)",
            "─" * 60,
            f"  Observations         : {self.n_observations:>10d}",
            "",
        ]
        for name, value in self._result.params.items():
            lo, hi = ci.loc[name, "lower"], ci.loc[name, "upper"]
            lines.append(f"  {name:<32}{value:>8.3f}   [{lo:>6.2f}, {hi:>6.2f}]")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


def ols_reference(data: pd.DataFrame, design: FactorialDesign = TRIAL_DESIGN) -> ReferenceFit:
    """
    Fit the design by OLS on rows with an observed response.

    Raises
    ------
    ``ValueError``
        If the data does not match the design.
    """
    check_trial_data(data, design)
    complete = data.dropna(subset=["response"]).reset_index(drop=True)
    complete = complete.assign(group=complete["group"].astype(str), time=complete["time"].astype(str))
    X = pd.DataFrame(design.design_matrix(complete), columns=design.coefficients)
    result = sm.OLS(complete["response"].astype(float), X).fit()
    return ReferenceFit(result, design)
