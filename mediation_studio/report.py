"""
Tabular and text output for mediation results.

All three engines (posterior, bootstrap, SEM) return an "effects" block of
the same shape, so the helpers here work on any of them.
"""

from __future__ import annotations

import math
from typing import Mapping

import pandas as pd

from .config import EFFECT_LABELS


def _is_missing(v) -> bool:
    return v is None or (isinstance(v, float) and math.isnan(v))


def _fmt(v, digits: int) -> str:
    return "NA" if _is_missing(v) else f"{v:.{digits}f}"


def _interval_label(result: dict) -> str:
    if "ci_method" in result:
        return f"{result['ci'] * 100:.0f}% {result['ci_method']}"
    return f"{result.get('ci_level', 0.95) * 100:.0f}% CI"


def to_dataframe(result: dict) -> pd.DataFrame:
    """One row per effect: Effect, Estimate, CI_low, CI_high."""
    rows = []
    for key, label in EFFECT_LABELS.items():
        eff = result["effects"].get(key)
        if eff is None:
            continue
        rows.append({
            "Effect":   label,
            "Estimate": eff["estimate"],
            "CI_low":   eff["ci_lower"],
            "CI_high":  eff["ci_upper"],
        })
    return pd.DataFrame(rows, columns=["Effect", "Estimate", "CI_low", "CI_high"])


def format_mediation(result: dict, digits: int = 3) -> str:
    """Render a result as a plain-text block for the console."""
    if "ci_method" in result:
        title = "# Causal Mediation Analysis from Posterior Draws"
    elif "model_syntax" in result:
        title = "# Causal Mediation Analysis (SEM)"
    else:
        title = "# Causal Mediation Analysis (Bootstrap)"

    table = to_dataframe(result)
    ci_label = _interval_label(result)
    est_col = [_fmt(v, digits) for v in table["Estimate"]]
    ci_col = [
        f"[{_fmt(lo, digits)}, {_fmt(hi, digits)}]"
        for lo, hi in zip(table["CI_low"], table["CI_high"])
    ]

    w_eff = max([len("Effect")] + [len(e) for e in table["Effect"]])
    w_est = max([len("Estimate")] + [len(e) for e in est_col])
    w_ci = max([len(ci_label)] + [len(c) for c in ci_col])

    lines = [
        title,
        "",
        f"Treatment: {result['treatment']}",
        f"Mediator : {result['mediator']}",
        f"Response : {result['outcome']}",
        "",
        f"{'Effect':<{w_eff}} | {'Estimate':>{w_est}} | {ci_label:^{w_ci}}",
        f"{'-' * w_eff}-|-{'-' * w_est}-|-{'-' * w_ci}",
    ]
    for eff, est, ci in zip(table["Effect"], est_col, ci_col):
        lines.append(f"{eff:<{w_eff}} | {est:>{w_est}} | {ci:>{w_ci}}")

    if "centrality" in result:
        lines += ["", f"Estimates are the {result['centrality']} of {result['n_draws']} draws."]
    return "\n".join(lines)


def compare_mediation(results: Mapping[str, dict]) -> pd.DataFrame:
    """
    Side-by-side comparison of several analyses of the same mediation model.

    Args:
        results: {label: result dict}, e.g.
                 {"posterior": ..., "bootstrap": ..., "sem": ...}

    Returns:
        DataFrame indexed by effect label with Estimate/CI_low/CI_high
        columns per analysis, columns ordered as the mapping.
    """
    if not results:
        raise ValueError("Nothing to compare: no results given")

    frames = []
    for label, result in results.items():
        table = to_dataframe(result).set_index("Effect")
        table.columns = pd.MultiIndex.from_product([[label], table.columns])
        frames.append(table)
    combined = pd.concat(frames, axis=1)
    order = [v for v in EFFECT_LABELS.values() if v in combined.index]
    return combined.loc[order]
