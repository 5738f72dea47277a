from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass

from ._exceptions import ConfigError

_ENV_PREFIX = "LONGITRIAL_"

# field name -> (environment variable suffix, parser)
_ENV_FIELDS = {
    "draws": ("DRAWS", int),
    "tune": ("TUNE", int),
    "chains": ("CHAINS", int),
    "cores": ("CORES", int),
    "target_accept": ("TARGET_ACCEPT", float),
    "random_seed": ("SEED", int),
    "hdi_prob": ("HDI_PROB", float),
}


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Sampler and summary settings shared by every model in an analysis.

    Pass one explicitly to ``BayesianTrialModel`` or ``ModelLadder``; there
    is no module-level sampler state. ``from_env()`` builds one from
    ``LONGITRIAL_*`` environment variables::

        config = AnalysisConfig(draws=2000, chains=4, random_seed=2024)
        quick = config.replace(draws=200, tune=200)
    """

    draws: int = 1000
    """Posterior draws kept per chain."""

    tune: int = 1000
    """Tuning (warm-up) iterations per chain, discarded."""

    chains: int = 4
    cores: int = 1
    target_accept: float = 0.9
    random_seed: int | None = 2024
    hdi_prob: float = 0.95
    """Probability mass of reported highest-density intervals."""

    max_rhat: float = 1.01
    """Largest acceptable R-hat in sampler diagnostics."""

    min_ess: float = 400.0
    """Smallest acceptable bulk effective sample size in sampler diagnostics."""

    progressbar: bool = False

    def __post_init__(self) -> None:
        for name in ("draws", "tune", "chains", "cores"):
            value = getattr(self, name)
            minimum = 0 if name == "tune" else 1
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                raise ConfigError(f"{name} must be an integer >= {minimum}. Got {value!r}.")
        for name in ("target_accept", "hdi_prob"):
            value = getattr(self, name)
            if not 0.0 < value < 1.0:
                raise ConfigError(f"{name} must be in (0, 1). Got {value!r}.")
        if self.max_rhat < 1.0:
            raise ConfigError(f"max_rhat must be >= 1. Got {self.max_rhat!r}.")
        if self.min_ess < 0:
            raise ConfigError(f"min_ess must be non-negative. Got {self.min_ess!r}.")

    @classmethod
    def from_env(cls, environ=None, **overrides) -> AnalysisConfig:
        """
        Build a config from ``LONGITRIAL_*`` environment variables.

        Unset variables keep their defaults; keyword ``overrides`` win over
        both.

        Raises
        ------
        ``ConfigError``
            If a variable cannot be parsed or its value is out of range.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for field, (suffix, parse) in _ENV_FIELDS.items():
            raw = environ.get(_ENV_PREFIX + suffix)
            if raw is None or raw.strip() == "":
                continue
            try:
                values[field] = parse(raw)
            except ValueError:
                raise ConfigError(
                    f"{_ENV_PREFIX}{suffix}={raw!r} is not a valid {parse.__name__}."
                ) from None
        values.update(overrides)
        return cls(**values)

    def replace(self, **changes) -> AnalysisConfig:
        """Return a copy with ``changes`` applied (validated again)."""
        return dataclasses.replace(self, **changes)

    def sample_kwargs(self) -> dict:
        """Keyword arguments for ``pymc.sample``."""
        return {
            "draws": self.draws,
            "tune": self.tune,
            "chains": self.chains,
            "cores": self.cores,
            "target_accept": self.target_accept,
            "random_seed": self.random_seed,
            "progressbar": self.progressbar,
            "return_inferencedata": True,
        }
