from __future__ import annotations

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm
import pytensor.tensor as pt
import structlog

from ..config import AnalysisConfig
from ..design import TRIAL_DESIGN, FactorialDesign
from ..diagnostics import DiagnosticReport, diagnose
from ..summarize import PosteriorContrastSummarizer, PosteriorSummary
from ._data import check_trial_data
from .specs import BASELINE, Assumption, ModelSpec

log = structlog.get_logger(__name__)


class TrialFit:
    """
    A fitted trial model: the posterior plus everything derived from it.

    ``draws`` holds one row per posterior sample (chains pooled) and one
    column per design coefficient; ``means()`` and ``contrasts()`` summarise
    those draws with the configured highest-density interval mass.
    """

    def __init__(
        self,
        idata: az.InferenceData,
        spec: ModelSpec,
        design: FactorialDesign,
        config: AnalysisConfig,
        n_observations: int,
        n_imputed: int,
    ) -> None:
        self._idata = idata
        self._spec = spec
        self._design = design
        self._config = config
        self._n_observations = n_observations
        self._n_imputed = n_imputed

    @property
    def idata(self) -> az.InferenceData:
        """The ArviZ ``InferenceData`` returned by the sampler."""
        return self._idata

    @property
    def spec(self) -> ModelSpec:
        return self._spec

    @property
    def name(self) -> str:
        return self._spec.name

    @property
    def n_observations(self) -> int:
        """Rows entering the likelihood, imputed rows included."""
        return self._n_observations

    @property
    def n_imputed(self) -> int:
        return self._n_imputed

    @property
    def assumptions(self) -> list[Assumption]:
        return self._spec.assumptions

    @property
    def draws(self) -> pd.DataFrame:
        """Posterior coefficient draws, samples × coefficients, chains pooled."""
        beta = (
            self._idata.posterior["beta"]
            .stack(sample=("chain", "draw"))
            .transpose("sample", "coef")
        )
        return pd.DataFrame(beta.to_numpy(), columns=self._design.coefficients)

    def _summarizer(self) -> PosteriorContrastSummarizer:
        return PosteriorContrastSummarizer(self._design, self._config.hdi_prob)

    def means(self) -> PosteriorSummary:
        """Posterior group × time means."""
        return self._summarizer().means(self.draws)

    def contrasts(self) -> PosteriorSummary:
        """Posterior within-group changes between timepoints."""
        return self._summarizer().contrasts(self.draws)

    def diagnostics(self) -> DiagnosticReport:
        """Convergence checks on the structural parameters of this fit."""
        var_names = ["beta", "sigma"]
        if self._spec.random_intercept:
            var_names.append("subject_sd")
        if self._spec.likelihood == "student_t":
            var_names.append("nu")
        return diagnose(self._idata, self._config, var_names=var_names, model=self.name)

    def summary(self) -> str:
        """Concise table of coefficient estimates and modelling assumptions."""
        pct = f"{self._config.hdi_prob:.0%}"
        stats = az.summary(
            self._idata, var_names=["beta"], hdi_prob=self._config.hdi_prob, kind="stats",
        )
        lines = [
            "",
            f"Bayesian Trial Model: {self.name}",
            f"  {self._spec.description}",
            "─" * 60,
            f"  Observations         : {self._n_observations:>10d}",
            f"  Imputed responses    : {self._n_imputed:>10d}",
            f"  Draws × chains       : {self._config.draws:>5d} × {self._config.chains}",
            "",
            f"  {'coefficient':<32}{'mean':>8}   {pct + ' HDI':>16}",
        ]
        for coef, (_, row) in zip(self._design.coefficients, stats.iterrows()):
            lo, hi = row.iloc[2], row.iloc[3]
            lines.append(f"  {coef:<32}{row.iloc[0]:>8.3f}   [{lo:>6.2f}, {hi:>6.2f}]")
        lines += [
            "",
            "  Assumptions",
            "  " + "┄" * 48,
        ]
        for a in self.assumptions:
            lines.append(f"  {a.tag}  {a.statement}")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


class BayesianTrialModel:
    """
    Bayesian regression of a repeated-measures response on group × time.

    The mean structure is fixed by the design (treatment-coded group × time
    interaction by default; the first coefficient is the intercept). What
    varies is controlled by the ``ModelSpec``:

    - per-subject random intercept (non-centred),
    - normal or Student-t likelihood,
    - informative priors on group differences in change,
    - a lower bound on the intercept,
    - dropping or imputing missing responses.

    Priors are weakly informative and scaled to the observed response:
    coefficients ``Normal(·, 2.5 sd(y))``, residual and subject scales
    ``HalfNormal(sd(y))``, Student-t degrees of freedom ``Gamma(2, 0.1)``.

    Example::

        model = BayesianTrialModel(ROBUST, config=AnalysisConfig(draws=1000))
        fit = model.fit(trial.data)
        print(fit.contrasts().summary())
    """

    def __init__(
        self,
        spec: ModelSpec = BASELINE,
        design: FactorialDesign = TRIAL_DESIGN,
        config: AnalysisConfig | None = None,
    ) -> None:
        self._spec = spec
        self._design = design
        self._config = config or AnalysisConfig()
        self._validate_inputs()

    def _validate_inputs(self) -> None:
        design = self._design
        for prior in self._spec.difference_priors:
            for label, level, levels in [
                ("group", prior.group, design.groups),
                ("reference", prior.reference, design.groups),
                ("later", prior.later, design.times),
                ("earlier", prior.earlier, design.times),
            ]:
                if level not in levels:
                    raise ValueError(
                        f"Prior '{prior.label}': {label} level '{level}' is not in the "
                        f"design. Known levels: {levels}"
                    )

    @property
    def spec(self) -> ModelSpec:
        return self._spec

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    def _prepare(self, data: pd.DataFrame) -> pd.DataFrame:
        check_trial_data(data, self._design)
        frame = data if self._spec.impute_missing else data.dropna(subset=["response"])
        frame = frame.reset_index(drop=True)
        return frame.assign(group=frame["group"].astype(str), time=frame["time"].astype(str))

    def build(self, data: pd.DataFrame) -> pm.Model:
        """
        Build the PyMC model for ``data`` without sampling it.

        Raises
        ------
        ``ValueError``
            If the data does not match the design (see ``fit``).
        """
        return self._build(self._prepare(data))

    def _build(self, frame: pd.DataFrame) -> pm.Model:
        spec, design = self._spec, self._design
        X = design.design_matrix(frame)
        y = frame["response"].to_numpy(dtype=float)
        observed = y[~np.isnan(y)]
        y_mean = float(observed.mean())
        y_sd = float(observed.std()) if observed.size > 1 else 0.0
        if not y_sd > 0:
            y_sd = 1.0

        subject_idx, subjects = pd.factorize(frame["subject_id"])
        coords = {
            "coef": design.coefficients,
            "effect": design.coefficients[1:],
            "subject": list(subjects),
        }

        with pm.Model(coords=coords) as model:
            if spec.intercept_lower is None:
                intercept = pm.Normal("intercept", mu=y_mean, sigma=2.5 * y_sd)
            else:
                intercept = pm.TruncatedNormal(
                    "intercept", mu=y_mean, sigma=2.5 * y_sd, lower=spec.intercept_lower,
                )
            effects = pm.Normal("effects", mu=0.0, sigma=2.5 * y_sd, dims="effect")
            beta = pm.Deterministic(
                "beta", pt.concatenate([pt.stack([intercept]), effects]), dims="coef",
            )

            for i, prior in enumerate(spec.difference_priors):
                diff = pt.dot(prior.weights(design), beta)
                pm.Potential(
                    f"difference_prior_{i}",
                    pm.logp(pm.Normal.dist(mu=prior.mu, sigma=prior.sigma), diff),
                )

            mu = pt.dot(X, beta)
            if spec.random_intercept:
                subject_sd = pm.HalfNormal("subject_sd", sigma=y_sd)
                subject_z = pm.Normal("subject_z", mu=0.0, sigma=1.0, dims="subject")
                mu = mu + subject_z[subject_idx] * subject_sd

            sigma = pm.HalfNormal("sigma", sigma=y_sd)
            response = np.ma.masked_invalid(y) if spec.impute_missing else y
            if spec.likelihood == "student_t":
                nu = pm.Gamma("nu", alpha=2.0, beta=0.1)
                pm.StudentT("response", nu=nu, mu=mu, sigma=sigma, observed=response)
            else:
                pm.Normal("response", mu=mu, sigma=sigma, observed=response)

        return model

    def fit(self, data: pd.DataFrame) -> TrialFit:
        """
        Sample the posterior of the model given an observation table.

        Parameters
        ----------
        data : pd.DataFrame
            Long table with ``subject_id``, ``group``, ``time`` and
            ``response`` columns. Missing responses are NaN; they are dropped
            unless the spec imputes them.

        Raises
        ------
        ``ValueError``
            If required columns are missing, a group/time level is not in the
            design, or no response is observed.
        """
        frame = self._prepare(data)
        model = self._build(frame)
        n_imputed = int(frame["response"].isna().sum())
        cfg = self._config

        log.info(
            "fitting model",
            model=self._spec.name,
            observations=len(frame),
            imputed=n_imputed,
            draws=cfg.draws,
            chains=cfg.chains,
        )
        with model:
            idata = pm.sample(**cfg.sample_kwargs())

        divergences = int(idata.sample_stats["diverging"].sum())
        log.info("model fitted", model=self._spec.name, divergences=divergences)
        return TrialFit(
            idata,
            spec=self._spec,
            design=self._design,
            config=cfg,
            n_observations=len(frame),
            n_imputed=n_imputed,
        )
