"""
Dataset loading and quasi-Bayesian model fitting
================================================
fit_model() fits one regression equation by OLS and returns a
PosteriorModel whose draws approximate the posterior under flat priors:

  beta  ~ MVN(beta_hat, Cov(beta_hat))
  sigma = sqrt(SSR / chi2(df_resid))

This is the quasi-Bayesian Monte Carlo approximation used by frequentist
mediation software; it lets the posterior mediation summary run without an
MCMC sampler.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .config import DEFAULT_N_DRAWS, DRAW_SEED, INTERCEPT_NAME, SIGMA_NAME
from .posterior import PosteriorModel, parse_formula


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

def _to_dataframe(raw) -> pd.DataFrame:
    if isinstance(raw, pd.DataFrame):
        return raw
    if isinstance(raw, (str, Path)):
        return pd.read_csv(raw)
    if isinstance(raw, list):
        return pd.DataFrame(raw)
    if isinstance(raw, dict):
        return pd.DataFrame(raw)
    raise TypeError(f"Unsupported data type: {type(raw)}")


def load_dataset(source, columns: Optional[list[str]] = None, min_rows: int = 3) -> pd.DataFrame:
    """
    Load a dataset and keep complete numeric cases.

    `source` may be a CSV path, a DataFrame, a columnar dict or a list of
    records. When `columns` is given only those columns are kept.
    """
    df = _to_dataframe(source)
    if columns is not None:
        for col in columns:
            if col not in df.columns:
                raise ValueError(f"Column '{col}' not found in data")
        df = df[list(columns)]

    df = df.apply(pd.to_numeric, errors="coerce").dropna().reset_index(drop=True)
    if len(df) < min_rows:
        raise ValueError(
            f"Insufficient complete observations (n={len(df)}). "
            f"Need at least {min_rows} complete cases."
        )
    return df


# ---------------------------------------------------------------------------
# Quasi-Bayesian fit
# ---------------------------------------------------------------------------

def fit_model(
    data,
    formula: str,
    n_draws: int = DEFAULT_N_DRAWS,
    seed: Optional[int] = DRAW_SEED,
) -> PosteriorModel:
    """Fit `formula` by OLS and simulate coefficient draws."""
    response, predictors = parse_formula(formula)
    df = load_dataset(data, columns=[response] + predictors, min_rows=len(predictors) + 2)

    n_draws = int(n_draws)
    if n_draws < 1:
        raise ValueError(f"n_draws must be positive, got {n_draws}")

    X = sm.add_constant(df[predictors], has_constant="add")
    fit = sm.OLS(df[response], X).fit()

    rng = np.random.default_rng(seed)
    beta = rng.multivariate_normal(
        fit.params.to_numpy(), fit.cov_params().to_numpy(), size=n_draws
    )
    df_resid = float(fit.df_resid)
    sigma = np.sqrt(fit.ssr / rng.chisquare(df_resid, size=n_draws))

    draws: dict[str, np.ndarray] = {}
    for i, name in enumerate(fit.params.index):
        key = INTERCEPT_NAME if name == "const" else str(name)
        draws[key] = beta[:, i]
    draws[SIGMA_NAME] = sigma

    return PosteriorModel(response=response, predictors=predictors, draws=draws)
