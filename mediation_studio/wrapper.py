#!/usr/bin/env python3
"""
Mediation Studio Engine Wrapper

Reads a JSON request from stdin, runs the requested mediation analysis,
captures stdout and warnings, then writes a single JSON response to stdout.

Wire format (stdin):
  {
    "id": "<uuid>",
    "analysis": "bayes_mediation" | "bootstrap_mediation" | "sem_mediation" | "compare",
    "data": {"<column>": [values...], ...},
    "options": {
      "treatment": str, "mediator": str, "outcome": str,
      "covariates": [str, ...],
      "formulaM": str, "formulaY": str,              (bayes, optional)
      "drawsM": {name: [...]}, "drawsY": {name: [...]}, (bayes, optional)
      "centrality": "median" | "mean" | "MAP",
      "ciMethod": "ETI" | "HDI",
      "ciLevel": float, "nBoot": int, "nDraws": int,
      "bootstrap": bool, "seed": int
    }
  }

Wire format (stdout, last line):
  {
    "id": "<uuid>",
    "success": true|false,
    "result": <serialized result>,
    "error": "<message>",
    "traceback": "<traceback>",
    "output": "<captured stdout>",
    "warnings": ["<message>", ...]
  }
"""

import contextlib
import io
import json
import sys
import traceback
import warnings

import numpy as np
import pandas as pd

from .bayes_mediation import mediation
from .bootstrap_mediation import bootstrap_mediation
from .config import (
    BOOT_SEED,
    DEFAULT_CENTRALITY,
    DEFAULT_CI_LEVEL,
    DEFAULT_CI_METHOD,
    DEFAULT_N_BOOT,
    DEFAULT_N_DRAWS,
    DRAW_SEED,
    MIN_N_BOOT,
)
from .models import fit_model
from .posterior import PosteriorModel, parse_formula
from .report import compare_mediation, format_mediation
from .sem_mediation import sem_mediation


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _serialize(obj, _depth=0):
    """
    Recursively serialize Python objects to JSON-compatible types.
    Handles numpy arrays, pandas DataFrames/Series, and common scalars.
    Depth limit prevents runaway recursion on circular structures.
    """
    if _depth > 20:
        return str(obj)

    if isinstance(obj, float) and not np.isfinite(obj):
        return None

    # None, bool, int, float, str → pass through
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return _serialize(float(obj), _depth + 1)
    if isinstance(obj, np.ndarray):
        return {
            "__type": "ndarray",
            "dtype": str(obj.dtype),
            "shape": list(obj.shape),
            "data": _serialize(obj.tolist(), _depth + 1),
        }

    if isinstance(obj, pd.DataFrame):
        flat = obj.copy()
        flat.columns = [
            " ".join(str(p) for p in c) if isinstance(c, tuple) else str(c)
            for c in flat.columns
        ]
        return {
            "__type": "DataFrame",
            "columns": list(flat.columns),
            "index": _serialize(list(flat.index), _depth + 1),
            "data": _serialize(flat.values.tolist(), _depth + 1),
        }
    if isinstance(obj, pd.Series):
        return {
            "__type": "DataFrame",
            "columns": [str(obj.name) if obj.name is not None else "value"],
            "index": _serialize(list(obj.index), _depth + 1),
            "data": [[v] for v in _serialize(obj.tolist(), _depth + 1)],
        }

    if isinstance(obj, (list, tuple)):
        return [_serialize(v, _depth + 1) for v in obj]

    if isinstance(obj, dict):
        return {str(k): _serialize(v, _depth + 1) for k, v in obj.items()}

    return str(obj)


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

def _resolve_options(options: dict) -> dict:
    """Map camelCase request options to keyword arguments, with defaults."""
    opts = {
        "treatment":  options.get("treatment"),
        "mediator":   options.get("mediator"),
        "outcome":    options.get("outcome"),
        "covariates": [],
        "centrality": DEFAULT_CENTRALITY,
        "ci_method":  DEFAULT_CI_METHOD,
        "ci_level":   DEFAULT_CI_LEVEL,
        "n_boot":     DEFAULT_N_BOOT,
        "n_draws":    DEFAULT_N_DRAWS,
        "bootstrap":  True,
        "seed":       None,
    }

    cov_raw = options.get("covariates")
    if cov_raw is not None:
        cov_list = cov_raw if isinstance(cov_raw, (list, tuple)) else [cov_raw]
        opts["covariates"] = [str(c) for c in cov_list if c]

    if options.get("centrality") is not None:
        opts["centrality"] = str(options["centrality"])
    if options.get("ciMethod") is not None:
        opts["ci_method"] = str(options["ciMethod"])
    if options.get("ciLevel") is not None:
        v = float(options["ciLevel"])
        opts["ci_level"] = v if 0 < v < 1 else DEFAULT_CI_LEVEL
    if options.get("nBoot") is not None:
        opts["n_boot"] = max(MIN_N_BOOT, int(options["nBoot"]))
    if options.get("nDraws") is not None:
        opts["n_draws"] = max(1, int(options["nDraws"]))
    if options.get("bootstrap") is not None:
        opts["bootstrap"] = bool(options["bootstrap"])
    if options.get("seed") is not None:
        opts["seed"] = int(options["seed"])
    return opts


def _require(opts: dict, *names: str) -> None:
    for name in names:
        if not opts.get(name):
            raise ValueError(f"Option '{name}' is required")


# ---------------------------------------------------------------------------
# Analyses
# ---------------------------------------------------------------------------

def _posterior_models(data: dict, options: dict, opts: dict) -> tuple:
    formula_m = options.get("formulaM")
    formula_y = options.get("formulaY")
    if not formula_m or not formula_y:
        _require(opts, "treatment", "mediator", "outcome")
        covs = opts["covariates"]
        formula_m = f"{opts['mediator']} ~ {' + '.join([opts['treatment']] + covs)}"
        formula_y = (
            f"{opts['outcome']} ~ "
            f"{' + '.join([opts['treatment'], opts['mediator']] + covs)}"
        )

    draws_m = options.get("drawsM")
    draws_y = options.get("drawsY")
    if draws_m is not None and draws_y is not None:
        resp_m, preds_m = parse_formula(formula_m)
        resp_y, preds_y = parse_formula(formula_y)
        return (
            PosteriorModel(resp_m, preds_m, draws_m),
            PosteriorModel(resp_y, preds_y, draws_y),
        )

    seed = opts["seed"] if opts["seed"] is not None else DRAW_SEED
    return (
        fit_model(data, formula_m, n_draws=opts["n_draws"], seed=seed),
        fit_model(data, formula_y, n_draws=opts["n_draws"], seed=seed + 1),
    )


def _run_bayes(data: dict, options: dict) -> dict:
    opts = _resolve_options(options)
    model_m, model_y = _posterior_models(data, options, opts)
    return mediation(
        model_m, model_y,
        treatment=opts["treatment"],
        mediator=opts["mediator"],
        centrality=opts["centrality"],
        ci=opts["ci_level"],
        method=opts["ci_method"],
    )


def _run_bootstrap(data: dict, options: dict) -> dict:
    opts = _resolve_options(options)
    _require(opts, "treatment", "mediator", "outcome")
    return bootstrap_mediation(
        data,
        opts["treatment"], opts["mediator"], opts["outcome"],
        covariates=opts["covariates"],
        bootstrap=opts["bootstrap"],
        n_boot=opts["n_boot"],
        ci_level=opts["ci_level"],
        seed=opts["seed"] if opts["seed"] is not None else BOOT_SEED,
    )


def _run_sem(data: dict, options: dict) -> dict:
    opts = _resolve_options(options)
    _require(opts, "treatment", "mediator", "outcome")
    return sem_mediation(
        data,
        opts["treatment"], opts["mediator"], opts["outcome"],
        covariates=opts["covariates"],
        ci_level=opts["ci_level"],
    )


def _run_compare(data: dict, options: dict) -> dict:
    results = {
        "posterior": _run_bayes(data, options),
        "bootstrap": _run_bootstrap(data, options),
        "sem":       _run_sem(data, options),
    }
    for label, res in results.items():
        print(f"[{label}]")
        print(format_mediation(res))
        print()
    return {
        "results": results,
        "comparison": compare_mediation(results),
    }


ANALYSES = {
    "bayes_mediation":     _run_bayes,
    "bootstrap_mediation": _run_bootstrap,
    "sem_mediation":       _run_sem,
    "compare":             _run_compare,
}


# ---------------------------------------------------------------------------
# Request execution
# ---------------------------------------------------------------------------

def _execute(request: dict) -> dict:
    req_id = request.get("id", "")
    analysis = request.get("analysis", "")
    data = request.get("data", {})
    options = request.get("options", {}) or {}

    runner = ANALYSES.get(analysis)
    if runner is None:
        return {
            "id": req_id,
            "success": False,
            "error": (
                f"Unknown analysis '{analysis}'. "
                f"Use one of: {', '.join(sorted(ANALYSES))}"
            ),
        }

    stdout_capture = io.StringIO()

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            with contextlib.redirect_stdout(stdout_capture):
                raw_result = runner(data, options)
        except Exception:
            tb = traceback.format_exc()
            return {
                "id": req_id,
                "success": False,
                "error": tb.strip().splitlines()[-1],
                "traceback": tb,
                "output": stdout_capture.getvalue(),
                "warnings": [str(w.message) for w in caught],
            }

    return {
        "id": req_id,
        "success": True,
        "result": _serialize(raw_result),
        "output": stdout_capture.getvalue(),
        "warnings": [str(w.message) for w in caught],
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    raw = sys.stdin.read()
    try:
        request = json.loads(raw)
    except json.JSONDecodeError as exc:
        response = {
            "id": "",
            "success": False,
            "error": f"Invalid JSON request: {exc}",
        }
        print(json.dumps(response), flush=True)
        return

    response = _execute(request)
    print(json.dumps(response), flush=True)


if __name__ == "__main__":
    main()
