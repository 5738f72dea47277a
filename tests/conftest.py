import arviz as az
import numpy as np
import pytest

from longitrial import TRIAL_DESIGN

TRUE_COEFS = np.array([20.0, 1.0, 1.5, 0.0, 2.0, 4.5])


def _fake_idata(chains=4, draws=1_000, shift=0.0, divergences=0, seed=0):
    """
    Posterior-shaped InferenceData with iid normal draws around TRUE_COEFS.

    ``shift`` moves each successive chain by that much, breaking mixing.
    The structural parameters of every ladder rung are present so any
    ``TrialFit`` can run its diagnostics.
    """
    rng = np.random.default_rng(seed)
    offsets = shift * np.arange(chains)[:, None, None]
    beta = TRUE_COEFS + 0.3 * rng.normal(size=(chains, draws, 6)) + offsets
    sigma = np.abs(3.0 + 0.1 * rng.normal(size=(chains, draws)))
    subject_sd = np.abs(4.0 + 0.2 * rng.normal(size=(chains, draws)))
    nu = 10.0 + rng.gamma(2.0, size=(chains, draws))
    diverging = np.zeros((chains, draws), dtype=bool)
    diverging.flat[:divergences] = True
    return az.from_dict(
        posterior={"beta": beta, "sigma": sigma, "subject_sd": subject_sd, "nu": nu},
        sample_stats={"diverging": diverging},
        coords={"coef": TRIAL_DESIGN.coefficients},
        dims={"beta": ["coef"]},
    )


@pytest.fixture
def fake_idata():
    """Factory for posterior-shaped InferenceData without running a sampler."""
    return _fake_idata
