from ._exceptions import ConfigError, DesignError, InvalidModeError, ShapeError
from ._logging import configure_logging
from .config import AnalysisConfig
from .design import TRIAL_DESIGN, FactorialDesign
from .diagnostics import DiagnosticCheck, DiagnosticReport, diagnose
from .ladder import LadderResult, ModelLadder
from .models import (
    BASELINE,
    DEFAULT_LADDER,
    IMPUTED,
    INFORMATIVE,
    RANDOM_INTERCEPT,
    ROBUST,
    Assumption,
    BayesianTrialModel,
    DifferencePrior,
    ModelSpec,
    ReferenceFit,
    TrialFit,
    ols_reference,
)
from .simulate import SimulatedTrial, TrialSimulator
from .summarize import (
    PosteriorContrastSummarizer,
    PosteriorSummary,
    SummaryMode,
    SummaryRow,
    summarize_draws,
)

__all__ = [
    "InvalidModeError", "ShapeError", "DesignError", "ConfigError",
    "configure_logging",
    "AnalysisConfig",
    "FactorialDesign", "TRIAL_DESIGN",
    "PosteriorContrastSummarizer", "PosteriorSummary", "SummaryMode", "SummaryRow", "summarize_draws",
    "TrialSimulator", "SimulatedTrial",
    "BayesianTrialModel", "TrialFit", "ModelSpec", "DifferencePrior", "Assumption",
    "BASELINE", "RANDOM_INTERCEPT", "ROBUST", "INFORMATIVE", "IMPUTED", "DEFAULT_LADDER",
    "ReferenceFit", "ols_reference",
    "ModelLadder", "LadderResult",
    "DiagnosticCheck", "DiagnosticReport", "diagnose",
]
