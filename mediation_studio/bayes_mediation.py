"""
Bayesian Causal Mediation Summary
=================================
Summarizes direct, indirect, mediator and total effects from the posterior
draws of two regression equations that share a treatment (T) and a
mediator (M):

  mediator equation : M ~ T + covariates        (path a)
  outcome equation  : Y ~ T + M + covariates    (paths c', b)

Per draw:
  direct   = c'
  mediator = b
  indirect = a * b
  total    = c' + a * b

Each series is then summarized with the chosen centrality and credible
interval. The indirect effect is always the summary of the per-draw
product, never the product of summaries.

Proportion mediated is indirect / total, computed from the point
estimates. Its interval is the indirect interval divided by the total
point estimate.

Result structure
----------------
{
  "treatment": str,
  "mediator": str,
  "outcome": str,
  "n_draws": int,
  "centrality": str,
  "ci": float,
  "ci_method": str,
  "effects": {
    "direct":              {"estimate": float, "ci_lower": float, "ci_upper": float},
    "indirect":            {...},
    "mediator":            {...},
    "total":               {...},
    "proportion_mediated": {...}
  },
  "interpretation": str
}
"""

from __future__ import annotations

import math
import warnings
from typing import Optional, Sequence, Union

import numpy as np

from .config import (
    CENTRALITIES,
    CI_METHODS,
    DEFAULT_CENTRALITY,
    DEFAULT_CI_LEVEL,
    DEFAULT_CI_METHOD,
)
from .posterior import PosteriorModel
from .summary import describe


ModelInput = Union[PosteriorModel, Sequence[PosteriorModel]]


# ---------------------------------------------------------------------------
# Role inference
# ---------------------------------------------------------------------------

def _split_models(
    model: ModelInput,
    model_y: Optional[PosteriorModel],
) -> tuple[PosteriorModel, PosteriorModel]:
    """Return (mediator model, outcome model)."""
    if model_y is not None:
        if not isinstance(model, PosteriorModel):
            raise TypeError("With 'model_y' given, 'model' must be a single PosteriorModel")
        return model, model_y

    if isinstance(model, PosteriorModel):
        raise ValueError(
            "A single equation cannot carry a mediation model; pass the outcome model "
            "as 'model_y' or a pair of models"
        )
    models = list(model)
    if len(models) != 2:
        raise ValueError(f"Expected exactly two equations, got {len(models)}")

    first, second = models
    if first.response in second.predictors:
        return first, second
    if second.response in first.predictors:
        return second, first
    raise ValueError(
        "Cannot tell the mediator equation from the outcome equation: neither "
        f"response ('{first.response}', '{second.response}') is a predictor of the other"
    )


def infer_roles(
    model_m: PosteriorModel,
    model_y: PosteriorModel,
    treatment: Optional[str] = None,
    mediator: Optional[str] = None,
) -> tuple[str, str]:
    """
    Resolve (treatment, mediator) names.

    By convention the mediator is the response of the mediator equation and
    the treatment is the first predictor of the mediator equation that also
    predicts the outcome.
    """
    if mediator is None:
        mediator = model_m.response
    if mediator != model_m.response:
        raise ValueError(
            f"Mediator '{mediator}' is not the response of the mediator model "
            f"'{model_m.formula}'"
        )
    if mediator not in model_y.predictors:
        raise ValueError(
            f"Mediator '{mediator}' is not a predictor of the outcome model '{model_y.formula}'"
        )

    if treatment is None:
        shared = [
            p for p in model_m.predictors
            if p in model_y.predictors and p != mediator
        ]
        if not shared:
            raise ValueError(
                "Cannot infer the treatment: no predictor of "
                f"'{model_m.formula}' also appears in '{model_y.formula}'"
            )
        treatment = shared[0]

    if treatment not in model_m.predictors:
        raise ValueError(
            f"Treatment '{treatment}' is not a predictor of the mediator model '{model_m.formula}'"
        )
    if treatment not in model_y.predictors:
        raise ValueError(
            f"Treatment '{treatment}' is not a predictor of the outcome model '{model_y.formula}'"
        )
    if treatment == mediator:
        raise ValueError("Treatment and mediator must be different variables")
    return treatment, mediator


# ---------------------------------------------------------------------------
# Proportion mediated
# ---------------------------------------------------------------------------

def _proportion_mediated(indirect: dict, total: dict) -> dict:
    tot = total["estimate"]
    if tot == 0:
        warnings.warn("Total effect is zero; proportion mediated is undefined.")
        return {"estimate": math.nan, "ci_lower": math.nan, "ci_upper": math.nan}

    lo = indirect["ci_lower"] / tot
    hi = indirect["ci_upper"] / tot
    return {
        "estimate": indirect["estimate"] / tot,
        "ci_lower": min(lo, hi),
        "ci_upper": max(lo, hi),
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def mediation(
    model: ModelInput,
    model_y: Optional[PosteriorModel] = None,
    treatment: Optional[str] = None,
    mediator: Optional[str] = None,
    centrality: str = DEFAULT_CENTRALITY,
    ci: float = DEFAULT_CI_LEVEL,
    method: str = DEFAULT_CI_METHOD,
) -> dict:
    """
    Causal mediation summary from posterior draws.

    Args:
        model: The mediator equation (with `model_y` the outcome equation),
               or a pair of equations from one multivariate fit in any order.
        model_y: The outcome equation.
        treatment: Treatment variable name; inferred when None.
        mediator: Mediator variable name; inferred when None.
        centrality: "median", "mean" or "MAP".
        ci: Credible interval width in (0, 1).
        method: "ETI" or "HDI".

    Returns:
        Result dict, see module docstring.
    """
    if str(centrality).lower() not in {c.lower() for c in CENTRALITIES}:
        raise ValueError(
            f"Unknown centrality '{centrality}'. Use one of: {', '.join(CENTRALITIES)}"
        )
    if str(method).upper() not in CI_METHODS:
        raise ValueError(
            f"Unknown interval method '{method}'. Use one of: {', '.join(CI_METHODS)}"
        )

    model_m, model_y = _split_models(model, model_y)
    treatment, mediator = infer_roles(model_m, model_y, treatment, mediator)

    a = model_m.get_draws(treatment)
    b = model_y.get_draws(mediator)
    c_prime = model_y.get_draws(treatment)

    if len(a) != len(b):
        raise ValueError(
            f"Draw counts differ between equations: {len(a)} in '{model_m.formula}' "
            f"vs {len(b)} in '{model_y.formula}'"
        )

    indirect_draws = a * b
    total_draws = c_prime + indirect_draws

    def _summ(x: np.ndarray) -> dict:
        return describe(x, centrality=centrality, ci=ci, method=method)

    direct = _summ(c_prime)
    indirect = _summ(indirect_draws)
    mediator_eff = _summ(b)
    total = _summ(total_draws)
    prop = _proportion_mediated(indirect, total)

    effects = {
        "direct":              direct,
        "indirect":            indirect,
        "mediator":            mediator_eff,
        "total":               total,
        "proportion_mediated": prop,
    }

    ci_pct = float(ci) * 100
    _excl = not (indirect["ci_lower"] <= 0 <= indirect["ci_upper"])
    interpretation = " ".join([
        f"Causal mediation of the effect of '{treatment}' on '{model_y.response}' "
        f"through '{mediator}', summarized over {len(a)} posterior draws "
        f"({centrality} with {ci_pct:.0f}% {str(method).upper()}).",
        f"Direct effect = {direct['estimate']:.3f} "
        f"[{direct['ci_lower']:.3f}, {direct['ci_upper']:.3f}].",
        f"Indirect effect = {indirect['estimate']:.3f} "
        f"[{indirect['ci_lower']:.3f}, {indirect['ci_upper']:.3f}], "
        f"{'excluding' if _excl else 'including'} zero.",
        f"Total effect = {total['estimate']:.3f}.",
        (
            f"Proportion mediated = {prop['estimate']:.1%}."
            if not math.isnan(prop["estimate"])
            else "Proportion mediated is undefined for a zero total effect."
        ),
    ])

    return {
        "treatment":  treatment,
        "mediator":   mediator,
        "outcome":    model_y.response,
        "n_draws":    int(len(a)),
        "centrality": str(centrality),
        "ci":         float(ci),
        "ci_method":  str(method).upper(),
        "effects":    effects,
        "interpretation": interpretation,
    }
