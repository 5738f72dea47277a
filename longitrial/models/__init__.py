from .bayes import BayesianTrialModel, TrialFit
from .ols import ReferenceFit, ols_reference
from .specs import (
    BASELINE,
    DEFAULT_LADDER,
    IMPUTED,
    INFORMATIVE,
    RANDOM_INTERCEPT,
    ROBUST,
    Assumption,
    DifferencePrior,
    ModelSpec,
)

__all__ = [
    "BayesianTrialModel", "TrialFit",
    "ReferenceFit", "ols_reference",
    "ModelSpec", "DifferencePrior", "Assumption",
    "BASELINE", "RANDOM_INTERCEPT", "ROBUST", "INFORMATIVE", "IMPUTED", "DEFAULT_LADDER",
]
