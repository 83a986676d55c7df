"""
Posterior draw sets for fitted regression equations
===================================================
A PosteriorModel couples the structure of one regression equation
(response ~ predictor + predictor ...) with its posterior draws: one ordered
sequence of samples per named coefficient, all of the same length.

Draws can come from

  - a plain mapping {name: [draw, draw, ...]},
  - a DataFrame with one column per coefficient and one row per draw,
  - sampler output (arviz InferenceData, or a dict of arrays shaped
    (chain, draw, ...)), read through arviz. Chains are flattened in
    order and vector parameters are split per element.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

import arviz as az
import numpy as np
import pandas as pd


# ---------------------------------------------------------------------------
# Formula parsing
# ---------------------------------------------------------------------------

def _clean_term(term: str) -> str:
    # Remove label annotations (e.g., "a*x1" -> "x1")
    return re.sub(r".*\*", "", term.strip()).strip()


def parse_formula(formula: str) -> tuple[str, list[str]]:
    """
    Split "y ~ x1 + x2" into ("y", ["x1", "x2"]).

    Intercept markers ("1", "0") are dropped. Interaction terms are not
    supported and raise ValueError.
    """
    if not isinstance(formula, str) or "~" not in formula:
        raise ValueError(f"Formula must look like 'y ~ x1 + x2', got {formula!r}")
    if "~~" in formula:
        raise ValueError(f"Covariance terms are not regression formulas: {formula!r}")

    lhs, rhs = formula.split("~", 1)
    response = _clean_term(lhs)
    if not response:
        raise ValueError(f"Formula has no response variable: {formula!r}")

    predictors: list[str] = []
    for term in rhs.split("+"):
        if ":" in term:
            raise ValueError(f"Interaction terms are not supported: {term.strip()!r}")
        name = _clean_term(term)
        if not name or re.match(r"^[0-9.]+$", name):
            continue
        if name not in predictors:
            predictors.append(name)

    if not predictors:
        raise ValueError(f"Formula has no predictors: {formula!r}")
    return response, predictors


# ---------------------------------------------------------------------------
# PosteriorModel
# ---------------------------------------------------------------------------

@dataclass
class PosteriorModel:
    response: str
    predictors: list[str]
    draws: dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        self.predictors = [str(p) for p in self.predictors]
        coerced: dict[str, np.ndarray] = {}
        for name, values in self.draws.items():
            coerced[str(name)] = np.asarray(values, dtype=float).reshape(-1)
        lengths = {len(v) for v in coerced.values()}
        if len(lengths) > 1:
            raise ValueError(
                f"Draw sequences for '{self.response}' differ in length: {sorted(lengths)}"
            )
        self.draws = coerced

    @property
    def n_draws(self) -> int:
        for values in self.draws.values():
            return len(values)
        return 0

    @property
    def formula(self) -> str:
        return f"{self.response} ~ {' + '.join(self.predictors)}"

    def has(self, name: str) -> bool:
        return name in self.draws

    def get_draws(self, name: str) -> np.ndarray:
        if name not in self.draws:
            raise ValueError(
                f"Variable '{name}' not found in draws of model '{self.formula}'. "
                f"Available: {', '.join(self.draws) or 'none'}"
            )
        return self.draws[name]

    # -- constructors -------------------------------------------------------

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        formula: Optional[str] = None,
        response: Optional[str] = None,
        predictors: Optional[list[str]] = None,
    ) -> "PosteriorModel":
        """Build from a draws table: one column per coefficient, one row per draw."""
        response, predictors = _resolve_structure(formula, response, predictors)
        draws = {str(col): df[col].to_numpy(dtype=float) for col in df.columns}
        return cls(response=response, predictors=predictors, draws=draws)

    @classmethod
    def from_posterior(
        cls,
        fitted,
        formula: Optional[str] = None,
        response: Optional[str] = None,
        predictors: Optional[list[str]] = None,
        var_map: Optional[Mapping[str, str]] = None,
    ) -> "PosteriorModel":
        """
        Build from sampler output: an arviz InferenceData, an xarray
        posterior Dataset, or a dict of arrays shaped (chain, draw, ...).

        Vector parameters are split into one coefficient per element, named
        "beta[0]", "beta[1]", ... (or "beta[0,1]" for matrices).
        `var_map` renames sampler variables or elements to coefficient
        names, e.g. {"b_treat": "treat", "beta[1]": "job_seek"}.
        """
        try:
            posterior = az.convert_to_dataset(fitted, group="posterior")
        except ValueError as e:
            raise TypeError(
                f"Cannot read a posterior group from {type(fitted).__name__}: {e}"
            ) from e
        response, predictors = _resolve_structure(formula, response, predictors)
        rename = dict(var_map or {})

        draws: dict[str, np.ndarray] = {}
        for name, var in posterior.data_vars.items():
            values = np.asarray(var.values, dtype=float)
            n_samples = values.shape[0] * values.shape[1]
            if values.ndim == 2:
                draws[rename.get(str(name), str(name))] = values.reshape(-1)
                continue
            flat = values.reshape(n_samples, -1)
            for i, idx in enumerate(np.ndindex(*values.shape[2:])):
                key = f"{name}[{','.join(str(j) for j in idx)}]"
                draws[rename.get(key, key)] = flat[:, i]
        return cls(response=response, predictors=predictors, draws=draws)


def _resolve_structure(
    formula: Optional[str],
    response: Optional[str],
    predictors: Optional[list[str]],
) -> tuple[str, list[str]]:
    if formula is not None:
        return parse_formula(formula)
    if response is None or not predictors:
        raise ValueError("Provide either a formula or both 'response' and 'predictors'")
    return str(response), [str(p) for p in predictors]
