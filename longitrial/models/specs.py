from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..design import FactorialDesign


@dataclass(frozen=True)
class Assumption:
    """
    A modelling assumption a fitted trial model relies on.

    ``checkable`` assumptions can be confronted with the data (posterior
    predictive checks, residual plots). The others hold by design of the
    study or by the analyst's choice of prior and cannot be checked from
    the observations alone.
    """

    statement: str
    checkable: bool

    @property
    def tag(self) -> str:
        return "[data]  " if self.checkable else "[design]"


@dataclass(frozen=True)
class DifferencePrior:
    """
    An informative normal prior on a group difference in change over time.

    The prior is placed on::

        (group change from earlier to later) - (reference change from earlier to later)

    which, under treatment coding, is the group × time interaction for
    ``later`` when ``earlier`` is the baseline visit.
    """

    group: str
    reference: str
    later: str
    earlier: str
    mu: float
    sigma: float

    def __post_init__(self) -> None:
        if self.sigma <= 0:
            raise ValueError(f"Prior sigma must be positive. Got {self.sigma}.")

    @property
    def label(self) -> str:
        return f"{self.group}-{self.reference}:{self.later}-{self.earlier}"

    def weights(self, design: FactorialDesign) -> np.ndarray:
        """Coefficient weights of the constrained difference."""
        return (
            design.contrast_weights(self.group, self.later, self.earlier)
            - design.contrast_weights(self.reference, self.later, self.earlier)
        )


@dataclass(frozen=True)
class ModelSpec:
    """
    One rung of the model ladder: which likelihood, random effects, priors
    and missing-data treatment to use.

    Build custom variants with ``dataclasses.replace``::

        no_bound = dataclasses.replace(INFORMATIVE, name="informative_unbounded", intercept_lower=None)
    """

    name: str
    description: str
    likelihood: str = "normal"
    """``"normal"`` or ``"student_t"``."""

    random_intercept: bool = False
    difference_priors: tuple[DifferencePrior, ...] = field(default_factory=tuple)
    intercept_lower: float | None = None
    """Lower truncation bound for the intercept prior; ``None`` for unbounded."""

    impute_missing: bool = False
    """Impute missing responses as latent parameters instead of dropping them."""

    def __post_init__(self) -> None:
        if self.likelihood not in ("normal", "student_t"):
            raise ValueError(
                f"likelihood must be 'normal' or 'student_t'. Got {self.likelihood!r}."
            )

    @property
    def assumptions(self) -> list[Assumption]:
        """Modelling assumptions the posterior summaries rely on."""
        result = []
        if self.random_intercept:
            result.append(Assumption(
                "Subject baselines vary as exchangeable normal random intercepts",
                checkable=True,
            ))
        else:
            result.append(Assumption(
                "Repeated measurements are independent given group and time",
                checkable=True,
            ))
        if self.likelihood == "normal":
            result.append(Assumption("Residuals are normally distributed", checkable=True))
        else:
            result.append(Assumption(
                "Residuals follow a Student-t distribution (heavy tails absorb outliers)",
                checkable=True,
            ))
        if self.impute_missing:
            result.append(Assumption(
                "Missing responses are missing at random given the model terms",
                checkable=False,
            ))
        else:
            result.append(Assumption(
                "Missing responses are missing completely at random (complete-case analysis)",
                checkable=False,
            ))
        if self.difference_priors:
            result.append(Assumption(
                "Informative priors reflect genuine external evidence on the group difference in change",
                checkable=False,
            ))
        if self.intercept_lower is not None:
            result.append(Assumption(
                f"Control baseline mean is at least {self.intercept_lower:g}",
                checkable=False,
            ))
        return result


_PRIOR_DIFFERENCES = (
    DifferencePrior("intervention", "control", later="t2", earlier="t1", mu=2.0, sigma=1.0),
    DifferencePrior("intervention", "control", later="t3", earlier="t1", mu=4.0, sigma=1.5),
)

BASELINE = ModelSpec(
    name="baseline",
    description="Normal likelihood, fixed group × time effects, complete cases",
)

RANDOM_INTERCEPT = ModelSpec(
    name="random_intercept",
    description="Adds a per-subject random intercept",
    random_intercept=True,
)

ROBUST = ModelSpec(
    name="robust",
    description="Student-t likelihood with per-subject random intercept",
    likelihood="student_t",
    random_intercept=True,
)

INFORMATIVE = ModelSpec(
    name="informative",
    description="Robust model with informative priors on group differences in change "
                "and a lower bound on the intercept",
    likelihood="student_t",
    random_intercept=True,
    difference_priors=_PRIOR_DIFFERENCES,
    intercept_lower=0.0,
)

IMPUTED = ModelSpec(
    name="imputed",
    description="Informative robust model that imputes missing responses",
    likelihood="student_t",
    random_intercept=True,
    difference_priors=_PRIOR_DIFFERENCES,
    intercept_lower=0.0,
    impute_missing=True,
)

DEFAULT_LADDER: tuple[ModelSpec, ...] = (
    BASELINE,
    RANDOM_INTERCEPT,
    ROBUST,
    INFORMATIVE,
    IMPUTED,
)
