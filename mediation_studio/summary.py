"""
Posterior draw summaries
========================
Point estimates and credible intervals over a 1-D sequence of posterior
draws.

  centrality : "median" | "mean" | "MAP"
      MAP is the mode of a Gaussian kernel density estimate evaluated on a
      regular grid spanning the draws.

  method : "ETI" | "HDI"
      ETI  equal-tailed interval, quantiles (1 - ci) / 2 and (1 + ci) / 2.
      HDI  highest density interval as computed by arviz.hdi: the narrowest
           window of the sorted draws holding floor(ci * n) + 1 of them.

Result structure of describe()
------------------------------
{
  "estimate": float,
  "ci_lower": float,
  "ci_upper": float
}
"""

from __future__ import annotations

import arviz as az
import numpy as np
from scipy import stats as scipy_stats

from .config import (
    CENTRALITIES,
    CI_METHODS,
    DEFAULT_CENTRALITY,
    DEFAULT_CI_LEVEL,
    DEFAULT_CI_METHOD,
    MAP_GRID_POINTS,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _coerce(draws) -> np.ndarray:
    arr = np.asarray(draws, dtype=float).reshape(-1)
    if arr.size == 0:
        raise ValueError("Cannot summarize an empty set of draws")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Draws contain non-finite values")
    return arr


def _check_ci(ci: float) -> float:
    ci = float(ci)
    if not 0 < ci < 1:
        raise ValueError(f"Credible interval width must lie in (0, 1), got {ci}")
    return ci


def _map_estimate(x: np.ndarray) -> float:
    """Mode of a Gaussian KDE; degenerate draws return their common value."""
    if x.size < 2 or np.ptp(x) == 0:
        return float(x[0])
    try:
        kde = scipy_stats.gaussian_kde(x)
    except np.linalg.LinAlgError:
        return float(np.median(x))
    grid = np.linspace(x.min(), x.max(), MAP_GRID_POINTS)
    return float(grid[int(np.argmax(kde(grid)))])


def _hdi(x: np.ndarray, ci: float) -> tuple[float, float]:
    lo, hi = az.hdi(x, hdi_prob=ci)
    return float(lo), float(hi)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def point_estimate(draws, centrality: str = DEFAULT_CENTRALITY) -> float:
    """Summarize draws with the chosen centrality statistic."""
    x = _coerce(draws)
    key = str(centrality)
    if key.lower() == "median":
        return float(np.median(x))
    if key.lower() == "mean":
        return float(np.mean(x))
    if key.upper() == "MAP":
        return _map_estimate(x)
    raise ValueError(
        f"Unknown centrality '{centrality}'. Use one of: {', '.join(CENTRALITIES)}"
    )


def credible_interval(
    draws,
    ci: float = DEFAULT_CI_LEVEL,
    method: str = DEFAULT_CI_METHOD,
) -> tuple[float, float]:
    """Return (lower, upper) bounds of the credible interval."""
    x = _coerce(draws)
    ci = _check_ci(ci)
    key = str(method).upper()
    if key == "ETI":
        lo, hi = np.quantile(x, [(1 - ci) / 2, (1 + ci) / 2])
        return float(lo), float(hi)
    if key == "HDI":
        return _hdi(x, ci)
    raise ValueError(
        f"Unknown interval method '{method}'. Use one of: {', '.join(CI_METHODS)}"
    )


def describe(
    draws,
    centrality: str = DEFAULT_CENTRALITY,
    ci: float = DEFAULT_CI_LEVEL,
    method: str = DEFAULT_CI_METHOD,
) -> dict:
    lo, hi = credible_interval(draws, ci=ci, method=method)
    return {
        "estimate": point_estimate(draws, centrality),
        "ci_lower": lo,
        "ci_upper": hi,
    }
