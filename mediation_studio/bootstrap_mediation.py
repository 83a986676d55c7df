"""
Bootstrap Mediation Analysis (product of coefficients)
======================================================
Frequentist counterpart of the posterior mediation summary. Paths are fit
by OLS and the indirect effect a*b gets a percentile bootstrap confidence
interval, or a Sobel z-approximation when bootstrapping is turned off.

  path a  : M ~ T + covariates
  path b  : Y ~ T + M + covariates   (coefficient of M)
  path c' : Y ~ T + M + covariates   (coefficient of T, direct effect)
  path c  : Y ~ T + covariates       (total effect)

Result structure
----------------
{
  "n": int,
  "treatment": str,
  "mediator": str,
  "outcome": str,
  "covariates": [str, ...] | null,
  "paths": {
    "a":       {"coef": float, "se": float, "t": float, "p": float},
    "b":       {...},
    "c":       {...},
    "c_prime": {...}
  },
  "effects": {
    "direct":              {"estimate": float, "ci_lower": float, "ci_upper": float},
    "indirect":            {"estimate": float, "ci_lower": float | null, "ci_upper": float | null},
    "mediator":            {...},
    "total":               {...},
    "proportion_mediated": {...}
  },
  "indirect_se": float | null,
  "significant": bool | null,
  "model_summary": {"r_squared_m": float, "r_squared_y": float},
  "ci_level": float,
  "method": "bootstrap" | "sobel",
  "n_boot": int | null,
  "interpretation": str
}
"""

from __future__ import annotations

import warnings
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats as scipy_stats

from .config import (
    BOOT_SEED,
    DEFAULT_CI_LEVEL,
    DEFAULT_N_BOOT,
    MIN_N_BOOT,
    MIN_VALID_BOOT,
    ROUND_DIGITS,
)
from .models import load_dataset


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _round(x) -> Optional[float]:
    if x is None or not np.isfinite(x):
        return None
    return round(float(x), ROUND_DIGITS)


def _extract_coef(fit_result, idx: int) -> dict:
    """Extract coefficient info at a parameter position of a fitted OLS result."""
    return {
        "coef": round(float(fit_result.params[idx]),  6),
        "se":   round(float(fit_result.bse[idx]),     6),
        "t":    round(float(fit_result.tvalues[idx]), 6),
        "p":    round(float(fit_result.pvalues[idx]), 8),
    }


def _ols(y: np.ndarray, X_raw: np.ndarray):
    X = sm.add_constant(X_raw, has_constant="add")
    return sm.OLS(y, X).fit()


def _bootstrap_effects(
    df: pd.DataFrame,
    treatment: str,
    mediator: str,
    outcome: str,
    covs: list[str],
    n_boot: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Return an (n_boot, 2) array of bootstrapped (a*b, c') estimates."""
    n = len(df)
    boot_vals = np.full((n_boot, 2), np.nan)

    a_rhs = [treatment] + covs
    direct_rhs = [treatment, mediator] + covs

    m_vals = df[mediator].to_numpy()
    y_vals = df[outcome].to_numpy()
    Xa_all = df[a_rhs].to_numpy()
    Xd_all = df[direct_rhs].to_numpy()

    for i in range(n_boot):
        idx = rng.integers(0, n, size=n)
        try:
            fa = _ols(m_vals[idx], Xa_all[idx])
            fd = _ols(y_vals[idx], Xd_all[idx])
        except (np.linalg.LinAlgError, ValueError):
            continue
        # index 1 = treatment, index 2 = mediator (after const)
        boot_vals[i, 0] = fa.params[1] * fd.params[2]
        boot_vals[i, 1] = fd.params[1]

    return boot_vals


def _percentile_ci(values: np.ndarray, alpha_tail: float) -> tuple[Optional[float], Optional[float]]:
    valid = values[np.isfinite(values)]
    if len(valid) < MIN_VALID_BOOT:
        return None, None
    return (
        _round(np.percentile(valid, alpha_tail * 100)),
        _round(np.percentile(valid, (1 - alpha_tail) * 100)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def bootstrap_mediation(
    data,
    treatment: str,
    mediator: str,
    outcome: str,
    covariates: Optional[list[str]] = None,
    bootstrap: bool = True,
    n_boot: int = DEFAULT_N_BOOT,
    ci_level: float = DEFAULT_CI_LEVEL,
    seed: Optional[int] = BOOT_SEED,
) -> dict:
    """Single-mediator mediation with bootstrap or Sobel intervals."""
    covs = [str(c) for c in (covariates or []) if c]
    cols = [treatment, mediator, outcome] + covs
    if len(set(cols)) != len(cols):
        raise ValueError(f"Treatment, mediator, outcome and covariates must be distinct: {cols}")

    df = load_dataset(data, columns=cols, min_rows=len(cols) + 2)
    n = len(df)

    ci_level = float(ci_level)
    if not 0 < ci_level < 1:
        raise ValueError(f"ci_level must lie in (0, 1), got {ci_level}")
    n_boot = max(MIN_N_BOOT, int(n_boot))
    alpha_tail = (1 - ci_level) / 2
    z_crit = float(scipy_stats.norm.ppf(1 - alpha_tail))

    # --- Fit paths --------------------------------------------------------
    fit_total = _ols(df[outcome].to_numpy(), df[[treatment] + covs].to_numpy())
    fit_a = _ols(df[mediator].to_numpy(), df[[treatment] + covs].to_numpy())
    fit_direct = _ols(df[outcome].to_numpy(), df[[treatment, mediator] + covs].to_numpy())

    path_a = _extract_coef(fit_a, 1)
    path_b = _extract_coef(fit_direct, 2)
    path_c = _extract_coef(fit_total, 1)
    path_c_prime = _extract_coef(fit_direct, 1)

    a_coef = float(fit_a.params[1])
    b_coef = float(fit_direct.params[2])
    cp_coef = float(fit_direct.params[1])
    indirect_est = a_coef * b_coef
    total_est = cp_coef + indirect_est

    def _wald(coef: float, se: float) -> dict:
        return {
            "estimate": _round(coef),
            "ci_lower": _round(coef - z_crit * se),
            "ci_upper": _round(coef + z_crit * se),
        }

    # --- Intervals ------------------------------------------------------------
    indirect_se = None
    ind_lo = ind_hi = None
    tot_lo = tot_hi = None
    prop_lo = prop_hi = None
    direct = _wald(cp_coef, float(fit_direct.bse[1]))

    if bootstrap:
        rng = np.random.default_rng(seed)
        boots = _bootstrap_effects(df, treatment, mediator, outcome, covs, n_boot, rng)
        ind_boot = boots[:, 0]
        tot_boot = boots[:, 0] + boots[:, 1]
        with np.errstate(divide="ignore", invalid="ignore"):
            prop_boot = ind_boot / tot_boot

        valid = ind_boot[np.isfinite(ind_boot)]
        if len(valid) >= MIN_VALID_BOOT:
            indirect_se = _round(np.std(valid, ddof=1))
        else:
            warnings.warn(
                f"Only {len(valid)} of {n_boot} bootstrap replicates succeeded; "
                "indirect effect interval unavailable."
            )
        ind_lo, ind_hi = _percentile_ci(ind_boot, alpha_tail)
        tot_lo, tot_hi = _percentile_ci(tot_boot, alpha_tail)
        prop_lo, prop_hi = _percentile_ci(prop_boot, alpha_tail)
    else:
        sobel_se = float(np.sqrt(
            b_coef ** 2 * float(fit_a.bse[1]) ** 2 +
            a_coef ** 2 * float(fit_direct.bse[2]) ** 2
        ))
        indirect_se = _round(sobel_se)
        ind_lo = _round(indirect_est - z_crit * sobel_se)
        ind_hi = _round(indirect_est + z_crit * sobel_se)
        tot_w = _wald(float(fit_total.params[1]), float(fit_total.bse[1]))
        tot_lo, tot_hi = tot_w["ci_lower"], tot_w["ci_upper"]
        if total_est != 0 and ind_lo is not None:
            prop_lo, prop_hi = sorted([ind_lo / total_est, ind_hi / total_est])

    if total_est == 0:
        warnings.warn("Total effect is zero; proportion mediated is undefined.")
        prop_est = None
        prop_lo = prop_hi = None
    else:
        prop_est = _round(indirect_est / total_est)

    significant = (
        not (ind_lo <= 0 <= ind_hi)
        if (ind_lo is not None and ind_hi is not None)
        else None
    )

    effects = {
        "direct":   direct,
        "indirect": {"estimate": _round(indirect_est), "ci_lower": ind_lo, "ci_upper": ind_hi},
        "mediator": _wald(b_coef, float(fit_direct.bse[2])),
        "total":    {"estimate": _round(total_est), "ci_lower": tot_lo, "ci_upper": tot_hi},
        "proportion_mediated": {"estimate": prop_est, "ci_lower": prop_lo, "ci_upper": prop_hi},
    }

    # --- Interpretation -------------------------------------------------------
    method = "bootstrap" if bootstrap else "sobel"
    _method_str = (
        f"percentile bootstrap (B = {n_boot})" if bootstrap else "Sobel z-approximation"
    )
    _sig_str = {
        True:  "The indirect effect was significant",
        False: "The indirect effect was not significant",
        None:  "The indirect effect interval could not be computed",
    }[significant]

    interpretation = " ".join([
        f"Mediation analysis tested whether the effect of '{treatment}' on '{outcome}' "
        f"was mediated by '{mediator}'.",
        f"N = {n} complete cases used. Indirect effect estimated via {_method_str} "
        f"with {ci_level * 100:.0f}% CIs.",
        f"Total effect (path c): b = {path_c['coef']:.3f}, SE = {path_c['se']:.3f}.",
        f"Direct effect (path c'): b = {path_c_prime['coef']:.3f}, SE = {path_c_prime['se']:.3f}.",
        f"{_sig_str}.",
    ])

    return {
        "n":          n,
        "treatment":  treatment,
        "mediator":   mediator,
        "outcome":    outcome,
        "covariates": covs if covs else None,
        "paths": {
            "a":       path_a,
            "b":       path_b,
            "c":       path_c,
            "c_prime": path_c_prime,
        },
        "effects":     effects,
        "indirect_se": indirect_se,
        "significant": significant,
        "model_summary": {
            "r_squared_m": round(float(fit_a.rsquared), 6),
            "r_squared_y": round(float(fit_direct.rsquared), 6),
        },
        "ci_level": ci_level,
        "method":   method,
        "n_boot":   n_boot if bootstrap else None,
        "interpretation": interpretation,
    }
