"""
SEM Mediation Analysis
======================
Structural-equation counterpart of the posterior mediation summary. Both
equations are estimated jointly with semopy:

  M ~ T + covariates
  Y ~ M + T + covariates

The indirect effect a*b gets a delta-method (Sobel) standard error and a
normal-theory confidence interval.

Result structure
----------------
{
  "n": int,
  "treatment": str,
  "mediator": str,
  "outcome": str,
  "covariates": [str, ...] | null,
  "model_syntax": str,
  "path_coefficients": [
    {"from": str, "to": str, "estimate": float, "se": float | null,
     "z": float | null, "p_value": float | null}, ...
  ],
  "effects": {
    "direct":              {"estimate": float, "ci_lower": float, "ci_upper": float},
    "indirect":            {...},
    "mediator":            {...},
    "total":               {...},
    "proportion_mediated": {...}
  },
  "indirect_se": float | null,
  "fit_indices": {"chi_square": float | null, "df": float | null, "cfi": float | null,
                  "rmsea": float | null, "aic": float | null, "bic": float | null} | null,
  "ci_level": float,
  "interpretation": str
}
"""

from __future__ import annotations

import warnings
from typing import Optional

import numpy as np
import pandas as pd
import semopy
from scipy import stats as scipy_stats

from .config import DEFAULT_CI_LEVEL, ROUND_DIGITS
from .models import load_dataset


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _safe_float(v) -> Optional[float]:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if np.isfinite(f) else None


def _round(v) -> Optional[float]:
    f = _safe_float(v)
    return round(f, ROUND_DIGITS) if f is not None else None


def build_syntax(treatment: str, mediator: str, outcome: str, covariates: list[str]) -> str:
    """Build semopy model syntax for a single-mediator model."""
    m_rhs = [treatment] + covariates
    y_rhs = [mediator, treatment] + covariates
    return "\n".join([
        f"{mediator} ~ {' + '.join(m_rhs)}",
        f"{outcome} ~ {' + '.join(y_rhs)}",
    ])


def _normalise_params(params: pd.DataFrame) -> pd.DataFrame:
    # semopy column names vary slightly by version; normalise them.
    col_map = {}
    for c in params.columns:
        col_map[c] = c.lower().replace(" ", "_").replace(".", "_").replace("-", "_")
    pe = params.rename(columns=col_map)

    def _get_col(*candidates):
        for c in candidates:
            if c in pe.columns:
                return pe[c]
        return pd.Series([None] * len(pe), index=pe.index)

    return pd.DataFrame({
        "lval":     _get_col("lval", "lhs"),
        "op":       _get_col("op"),
        "rval":     _get_col("rval", "rhs"),
        "estimate": pd.to_numeric(_get_col("estimate", "est", "value"), errors="coerce"),
        "se":       pd.to_numeric(_get_col("std__err", "std_err", "se"), errors="coerce"),
        "z":        pd.to_numeric(_get_col("z_value", "z_score", "z"), errors="coerce"),
        "p_value":  pd.to_numeric(_get_col("p_value", "pvalue", "p"), errors="coerce"),
    })


def _path(pe: pd.DataFrame, to: str, frm: str) -> pd.Series:
    rows = pe[(pe["op"] == "~") & (pe["lval"] == to) & (pe["rval"] == frm)]
    if rows.empty:
        raise RuntimeError(f"semopy did not report the path {frm} -> {to}")
    return rows.iloc[0]


def _fit_indices(model: semopy.Model) -> Optional[dict]:
    try:
        stats = semopy.calc_stats(model)
    except Exception as e:
        warnings.warn(f"Fit indices unavailable: {e}")
        return None

    row = stats.loc["Value"] if "Value" in stats.index else stats.iloc[0]

    def _get(*keys):
        for k in keys:
            if k in row.index:
                return _round(row[k])
        return None

    return {
        "chi_square": _get("chi2"),
        "df":         _get("DoF"),
        "cfi":        _get("CFI"),
        "rmsea":      _get("RMSEA"),
        "aic":        _get("AIC"),
        "bic":        _get("BIC"),
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def sem_mediation(
    data,
    treatment: str,
    mediator: str,
    outcome: str,
    covariates: Optional[list[str]] = None,
    ci_level: float = DEFAULT_CI_LEVEL,
) -> dict:
    """
    Single-mediator mediation fit as one structural equation model.

    Args:
        data: DataFrame, CSV path, list of records or column dict.
        treatment: Treatment column (T).
        mediator: Mediator column (M).
        outcome: Outcome column (Y).
        covariates: Extra columns entered in both equations.
        ci_level: Confidence level in (0, 1) for the normal-theory intervals.

    Returns:
        Result dict, see module docstring.

    Raises:
        ValueError: on overlapping roles, missing columns, too few complete
            rows or an out-of-range ci_level.
        RuntimeError: when semopy fails to fit the model.
    """
    covs = [str(c) for c in (covariates or []) if c]
    cols = [treatment, mediator, outcome] + covs
    if len(set(cols)) != len(cols):
        raise ValueError(f"Treatment, mediator, outcome and covariates must be distinct: {cols}")

    df = load_dataset(data, columns=cols, min_rows=len(cols) + 2)
    ci_level = float(ci_level)
    if not 0 < ci_level < 1:
        raise ValueError(f"ci_level must lie in (0, 1), got {ci_level}")
    z_crit = float(scipy_stats.norm.ppf(1 - (1 - ci_level) / 2))

    model_syntax = build_syntax(treatment, mediator, outcome, covs)
    model = semopy.Model(model_syntax)
    try:
        model.fit(df)
    except Exception as e:
        raise RuntimeError(f"semopy mediation model fitting failed: {e}") from e

    pe = _normalise_params(model.inspect())

    a_row = _path(pe, mediator, treatment)
    b_row = _path(pe, outcome, mediator)
    cp_row = _path(pe, outcome, treatment)

    a, se_a = float(a_row["estimate"]), _safe_float(a_row["se"])
    b, se_b = float(b_row["estimate"]), _safe_float(b_row["se"])
    cp, se_cp = float(cp_row["estimate"]), _safe_float(cp_row["se"])

    indirect = a * b
    total = cp + indirect

    def _interval(est: float, se: Optional[float]) -> dict:
        if se is None:
            return {"estimate": _round(est), "ci_lower": None, "ci_upper": None}
        return {
            "estimate": _round(est),
            "ci_lower": _round(est - z_crit * se),
            "ci_upper": _round(est + z_crit * se),
        }

    indirect_se = None
    if se_a is not None and se_b is not None:
        indirect_se = float(np.sqrt(b ** 2 * se_a ** 2 + a ** 2 * se_b ** 2))

    # a and b are asymptotically uncorrelated in a recursive mediation model
    total_se = None
    if indirect_se is not None and se_cp is not None:
        total_se = float(np.sqrt(se_cp ** 2 + indirect_se ** 2))

    ind_eff = _interval(indirect, indirect_se)
    if total == 0:
        warnings.warn("Total effect is zero; proportion mediated is undefined.")
        prop = {"estimate": None, "ci_lower": None, "ci_upper": None}
    else:
        prop = {"estimate": _round(indirect / total), "ci_lower": None, "ci_upper": None}
        if ind_eff["ci_lower"] is not None:
            lo, hi = sorted([ind_eff["ci_lower"] / total, ind_eff["ci_upper"] / total])
            prop["ci_lower"], prop["ci_upper"] = _round(lo), _round(hi)

    effects = {
        "direct":              _interval(cp, se_cp),
        "indirect":            ind_eff,
        "mediator":            _interval(b, se_b),
        "total":               _interval(total, total_se),
        "proportion_mediated": prop,
    }

    path_rows = []
    for _, r in pe[pe["op"] == "~"].iterrows():
        path_rows.append({
            "from":     str(r["rval"]),
            "to":       str(r["lval"]),
            "estimate": _round(r["estimate"]),
            "se":       _round(r["se"]),
            "z":        _round(r["z"]),
            "p_value":  _round(r["p_value"]),
        })

    _ci_pct = ci_level * 100
    _sig = (
        None if ind_eff["ci_lower"] is None
        else not (ind_eff["ci_lower"] <= 0 <= ind_eff["ci_upper"])
    )
    _sig_str = {
        True:  "significant",
        False: "not significant",
        None:  "of unknown significance (no standard errors)",
    }[_sig]

    interpretation = " ".join([
        f"Structural equation model of '{treatment}' -> '{mediator}' -> '{outcome}' "
        f"fit by semopy on N = {len(df)} complete cases.",
        f"Indirect effect a*b = {indirect:.3f} ({_ci_pct:.0f}% delta-method CI), {_sig_str}.",
        f"Direct effect = {cp:.3f}; total effect = {total:.3f}.",
    ])

    return {
        "n":            len(df),
        "treatment":    treatment,
        "mediator":     mediator,
        "outcome":      outcome,
        "covariates":   covs if covs else None,
        "model_syntax": model_syntax,
        "path_coefficients": path_rows,
        "effects":      effects,
        "indirect_se":  _round(indirect_se),
        "fit_indices":  _fit_indices(model),
        "ci_level":     ci_level,
        "interpretation": interpretation,
    }
