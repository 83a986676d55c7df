"""
Unit tests for mediation_studio/models.py.

Covers:
- load_dataset: accepted containers, column selection, incomplete rows.
- fit_model: quasi-Bayesian draws centred on the OLS fit, naming, seeding.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from mediation_studio.models import fit_model, load_dataset


# ---------------------------------------------------------------------------
# Class: load_dataset
# ---------------------------------------------------------------------------

class TestLoadDataset:

    def test_columnar_dict(self):
        df = load_dataset({"x": [1, 2, 3], "y": [4, 5, 6]})
        assert list(df.columns) == ["x", "y"]
        assert len(df) == 3

    def test_records(self):
        df = load_dataset([{"x": 1}, {"x": 2}, {"x": 3}])
        assert df["x"].tolist() == [1, 2, 3]

    def test_csv_path(self, tmp_path, jobs_df):
        path = tmp_path / "jobs.csv"
        jobs_df.to_csv(path, index=False)
        df = load_dataset(path, columns=["treat", "job_seek"])
        assert list(df.columns) == ["treat", "job_seek"]
        assert len(df) == len(jobs_df)

    def test_incomplete_and_non_numeric_rows_dropped(self):
        df = load_dataset({
            "x": [1, None, 3, 4, 5],
            "y": [1, 2, "bad", 4, 5],
        })
        assert df["x"].tolist() == [1.0, 4.0, 5.0]

    def test_missing_column_raises(self):
        with pytest.raises(ValueError, match="Column 'z' not found"):
            load_dataset({"x": [1, 2, 3]}, columns=["x", "z"])

    def test_too_few_rows_raise(self):
        with pytest.raises(ValueError, match="Insufficient complete observations"):
            load_dataset({"x": [1, 2]}, min_rows=3)

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError, match="Unsupported data type"):
            load_dataset(42)


# ---------------------------------------------------------------------------
# Class: fit_model
# ---------------------------------------------------------------------------

class TestFitModel:

    def test_structure_and_names(self, jobs_df):
        model = fit_model(jobs_df, "job_seek ~ treat + econ_hard", n_draws=500)
        assert model.response == "job_seek"
        assert model.predictors == ["treat", "econ_hard"]
        assert set(model.draws) == {"Intercept", "treat", "econ_hard", "sigma"}
        assert model.n_draws == 500

    def test_draws_centre_on_ols(self, jobs_df):
        model = fit_model(jobs_df, "job_seek ~ treat + econ_hard", n_draws=4000)
        ols = sm.OLS(
            jobs_df["job_seek"],
            sm.add_constant(jobs_df[["treat", "econ_hard"]]),
        ).fit()
        assert np.mean(model.get_draws("treat")) == pytest.approx(ols.params["treat"], abs=0.01)
        assert np.std(model.get_draws("treat")) == pytest.approx(ols.bse["treat"], rel=0.1)
        assert np.median(model.get_draws("sigma")) == pytest.approx(
            np.sqrt(ols.scale), rel=0.05
        )

    def test_sigma_draws_positive(self, jobs_df):
        model = fit_model(jobs_df, "depress2 ~ treat + job_seek", n_draws=200)
        assert np.all(model.get_draws("sigma") > 0)

    def test_seed_reproducible(self, jobs_df):
        m1 = fit_model(jobs_df, "job_seek ~ treat", n_draws=100, seed=5)
        m2 = fit_model(jobs_df, "job_seek ~ treat", n_draws=100, seed=5)
        np.testing.assert_array_equal(m1.get_draws("treat"), m2.get_draws("treat"))

    def test_missing_column_raises(self, jobs_df):
        with pytest.raises(ValueError, match="not found"):
            fit_model(jobs_df, "job_seek ~ nope")

    def test_non_positive_draws_raise(self, jobs_df):
        with pytest.raises(ValueError, match="n_draws"):
            fit_model(jobs_df, "job_seek ~ treat", n_draws=0)

    def test_accepts_columnar_dict(self, jobs_data):
        model = fit_model(jobs_data, "job_seek ~ treat", n_draws=50)
        assert model.n_draws == 50
