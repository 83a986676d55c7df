"""
Shared pytest fixtures for the mediation engines.

The synthetic dataset mirrors a job-search intervention study: a treatment
raises job-search self-efficacy (the mediator), which in turn lowers
depressive symptoms (the outcome). True paths:

    a  (treat -> job_seek)             =  0.5
    b  (job_seek -> depress2 | treat)  = -0.4
    c' (treat -> depress2 | job_seek)  = -0.3

so the total effect is c' + a*b = -0.5 and 40% of it is mediated.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from mediation_studio.posterior import PosteriorModel


TRUE_A = 0.5
TRUE_B = -0.4
TRUE_C_PRIME = -0.3


@pytest.fixture
def jobs_df():
    rng = np.random.default_rng(42)
    n = 1000
    treat = rng.normal(size=n)
    econ_hard = rng.normal(size=n)
    job_seek = TRUE_A * treat + 0.2 * econ_hard + rng.normal(size=n)
    depress2 = TRUE_C_PRIME * treat + TRUE_B * job_seek + 0.1 * econ_hard + rng.normal(size=n)
    return pd.DataFrame({
        "treat": treat,
        "econ_hard": econ_hard,
        "job_seek": job_seek,
        "depress2": depress2,
    })


@pytest.fixture
def jobs_data(jobs_df):
    """Columnar dict form, as sent over the engine wire."""
    return jobs_df.to_dict(orient="list")


def make_models(a, b, c_prime, covariate: bool = False):
    """Build a (mediator model, outcome model) pair from raw path draws."""
    preds_m = ["t", "x"] if covariate else ["t"]
    preds_y = ["t", "m", "x"] if covariate else ["t", "m"]
    draws_m = {"Intercept": np.zeros(len(a)), "t": a}
    draws_y = {"Intercept": np.zeros(len(b)), "t": c_prime, "m": b}
    if covariate:
        draws_m["x"] = np.zeros(len(a))
        draws_y["x"] = np.zeros(len(b))
    return (
        PosteriorModel(response="m", predictors=preds_m, draws=draws_m),
        PosteriorModel(response="y", predictors=preds_y, draws=draws_y),
    )


@pytest.fixture
def skewed_models():
    """
    Draws where the median of a*b differs from median(a) * median(b):
    products are [3, 4, 3] (median 3) while median(a) * median(b) = 2 * 2 = 4.
    """
    return make_models(
        a=np.array([1.0, 2.0, 3.0]),
        b=np.array([3.0, 2.0, 1.0]),
        c_prime=np.array([0.5, 0.5, 0.5]),
    )


@pytest.fixture
def random_models():
    rng = np.random.default_rng(7)
    n = 4000
    return make_models(
        a=rng.normal(0.5, 0.1, size=n),
        b=rng.lognormal(mean=-1.0, sigma=0.6, size=n),
        c_prime=rng.normal(0.3, 0.15, size=n),
        covariate=True,
    )
