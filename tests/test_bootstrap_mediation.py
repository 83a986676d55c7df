"""
Unit tests for mediation_studio/bootstrap_mediation.py.

Covers:
- OLS path decomposition c = c' + a*b.
- Percentile bootstrap intervals, seeding and the resample floor.
- Sobel fallback when bootstrapping is off.
- Input validation.
- Zero total effect: no proportion estimate or interval.
"""

from __future__ import annotations

import importlib
from types import SimpleNamespace
from unittest.mock import patch

import numpy as np
import pytest

from mediation_studio.bootstrap_mediation import bootstrap_mediation

from .conftest import TRUE_A, TRUE_B, TRUE_C_PRIME

# the package re-exports the function under the module name
bm = importlib.import_module("mediation_studio.bootstrap_mediation")


def _run(data, **kwargs):
    defaults = dict(
        treatment="treat", mediator="job_seek", outcome="depress2",
        covariates=["econ_hard"], n_boot=200,
    )
    defaults.update(kwargs)
    return bootstrap_mediation(data, **defaults)


# ---------------------------------------------------------------------------
# Class: point estimates
# ---------------------------------------------------------------------------

class TestPointEstimates:

    def test_total_equals_direct_plus_indirect(self, jobs_df):
        res = _run(jobs_df, bootstrap=False)
        p = res["paths"]
        assert p["c"]["coef"] == pytest.approx(
            p["c_prime"]["coef"] + p["a"]["coef"] * p["b"]["coef"], abs=1e-5
        )
        assert res["effects"]["total"]["estimate"] == pytest.approx(p["c"]["coef"], abs=1e-5)

    def test_recovers_true_paths(self, jobs_df):
        res = _run(jobs_df, bootstrap=False)
        assert res["paths"]["a"]["coef"] == pytest.approx(TRUE_A, abs=0.1)
        assert res["paths"]["b"]["coef"] == pytest.approx(TRUE_B, abs=0.1)
        assert res["effects"]["direct"]["estimate"] == pytest.approx(TRUE_C_PRIME, abs=0.1)

    def test_proportion_mediated(self, jobs_df):
        res = _run(jobs_df, bootstrap=False)
        eff = res["effects"]
        assert eff["proportion_mediated"]["estimate"] == pytest.approx(
            eff["indirect"]["estimate"] / eff["total"]["estimate"], abs=1e-4
        )

    def test_total_and_proportion_near_truth(self, jobs_df):
        eff = _run(jobs_df, bootstrap=False)["effects"]
        true_total = TRUE_C_PRIME + TRUE_A * TRUE_B
        assert eff["total"]["estimate"] == pytest.approx(true_total, abs=0.1)
        assert eff["proportion_mediated"]["estimate"] == pytest.approx(
            TRUE_A * TRUE_B / true_total, abs=0.15
        )

    def test_metadata(self, jobs_df):
        res = _run(jobs_df, bootstrap=False)
        assert res["n"] == 1000
        assert res["covariates"] == ["econ_hard"]
        assert 0 < res["model_summary"]["r_squared_m"] < 1


# ---------------------------------------------------------------------------
# Class: bootstrap intervals
# ---------------------------------------------------------------------------

class TestBootstrap:

    def test_indirect_interval_excludes_zero(self, jobs_df):
        res = _run(jobs_df)
        ind = res["effects"]["indirect"]
        assert ind["ci_lower"] < ind["estimate"] < ind["ci_upper"]
        assert ind["ci_upper"] < 0
        assert res["significant"] is True
        assert res["indirect_se"] > 0
        assert res["method"] == "bootstrap"

    def test_total_and_proportion_intervals(self, jobs_df):
        eff = _run(jobs_df)["effects"]
        assert eff["total"]["ci_lower"] < eff["total"]["ci_upper"]
        assert eff["proportion_mediated"]["ci_lower"] < eff["proportion_mediated"]["ci_upper"]

    def test_seed_reproducible(self, jobs_df):
        r1 = _run(jobs_df, seed=3)
        r2 = _run(jobs_df, seed=3)
        assert r1["effects"] == r2["effects"]

    def test_n_boot_floor(self, jobs_df):
        assert _run(jobs_df, n_boot=10)["n_boot"] == 100


# ---------------------------------------------------------------------------
# Class: Sobel
# ---------------------------------------------------------------------------

class TestSobel:

    def test_symmetric_interval(self, jobs_df):
        res = _run(jobs_df, bootstrap=False)
        ind = res["effects"]["indirect"]
        assert res["method"] == "sobel"
        assert res["n_boot"] is None
        assert (ind["estimate"] - ind["ci_lower"]) == pytest.approx(
            ind["ci_upper"] - ind["estimate"], abs=1e-5
        )

    def test_wider_interval_at_higher_level(self, jobs_df):
        narrow = _run(jobs_df, bootstrap=False, ci_level=0.8)["effects"]["indirect"]
        wide = _run(jobs_df, bootstrap=False, ci_level=0.99)["effects"]["indirect"]
        assert (wide["ci_upper"] - wide["ci_lower"]) > (narrow["ci_upper"] - narrow["ci_lower"])


# ---------------------------------------------------------------------------
# Class: validation
# ---------------------------------------------------------------------------

class TestValidation:

    def test_duplicate_roles_raise(self, jobs_df):
        with pytest.raises(ValueError, match="distinct"):
            _run(jobs_df, mediator="treat")

    def test_missing_column_raises(self, jobs_df):
        with pytest.raises(ValueError, match="Column 'nope' not found"):
            _run(jobs_df, outcome="nope")

    def test_bad_ci_level_raises(self, jobs_df):
        with pytest.raises(ValueError, match="ci_level"):
            _run(jobs_df, ci_level=1.5)

    def test_too_few_rows_raise(self, jobs_df):
        with pytest.raises(ValueError, match="Insufficient"):
            _run(jobs_df.head(4))


# ---------------------------------------------------------------------------
# Class: zero total effect
# ---------------------------------------------------------------------------

def _zero_fit():
    """Stand-in OLS result with a = c' = 0, so the point total is exactly zero."""
    return SimpleNamespace(
        params=np.array([0.0, 0.0, 1.0]),
        bse=np.array([0.1, 0.1, 0.1]),
        tvalues=np.zeros(3),
        pvalues=np.ones(3),
        rsquared=0.0,
    )


class TestZeroTotal:

    def _run_with_zero_point_fits(self, jobs_df, **kwargs):
        real_ols = bm._ols
        calls = {"n": 0}

        def _ols(y, X_raw):
            # the first three fits are the total, a and direct point fits
            calls["n"] += 1
            if calls["n"] <= 3:
                return _zero_fit()
            return real_ols(y, X_raw)

        with patch.object(bm, "_ols", side_effect=_ols):
            return _run(jobs_df, **kwargs)

    @pytest.mark.parametrize("bootstrap", [True, False])
    def test_no_interval_around_undefined_proportion(self, jobs_df, bootstrap):
        with pytest.warns(UserWarning, match="Total effect is zero"):
            res = self._run_with_zero_point_fits(jobs_df, bootstrap=bootstrap)
        prop = res["effects"]["proportion_mediated"]
        assert prop == {"estimate": None, "ci_lower": None, "ci_upper": None}
        assert res["effects"]["total"]["estimate"] == 0.0
