"""
Tests for the array-level fit() entry point.

Gaussian fits are compared with closed-form least squares; Binomial fits
with the maximum likelihood score equations.
"""

import numpy as np
import pytest

from pyinference.core.exceptions import (
    CollinearityError,
    ConvergenceError,
    DimensionError,
    ValidationError,
)
from pyinference.core.compute.tolerances import DIRECT_FP64, ITERATIVE_FP64
from pyinference.design import DesignMatrix
from pyinference.regression import fit, GLMSolution


def with_intercept(X):
    return np.column_stack([np.ones(X.shape[0]), X])


class TestGaussianFit:

    def test_matches_lstsq(self, simple_regression_data):
        X, y, _ = simple_regression_data
        X1 = with_intercept(X)
        result = fit(X1, y)
        expected, *_ = np.linalg.lstsq(X1, y, rcond=None)
        np.testing.assert_allclose(
            result.coefficients, expected,
            rtol=DIRECT_FP64.rtol, atol=DIRECT_FP64.atol,
        )

    def test_recovers_slope(self, rng):
        n = 1000
        x = rng.standard_normal(n)
        y = 2.0 * x + rng.standard_normal(n) * 0.1
        result = fit(with_intercept(x[:, None]), y)
        assert abs(result.coefficients[1] - 2.0) < 0.05
        assert abs(result.coefficients[0]) < 0.05

    def test_standard_errors_closed_form(self, simple_regression_data):
        X, y, _ = simple_regression_data
        X1 = with_intercept(X)
        result = fit(X1, y)
        n, p = X1.shape
        rss = np.sum((y - X1 @ result.coefficients) ** 2)
        sigma2 = rss / (n - p)
        expected = np.sqrt(np.diag(sigma2 * np.linalg.inv(X1.T @ X1)))
        np.testing.assert_allclose(result.standard_errors, expected, rtol=1e-8)
        assert result.dispersion == pytest.approx(sigma2)
        assert result.statistic_name == 't'

    def test_fit_statistics(self, simple_regression_data):
        X, y, _ = simple_regression_data
        X1 = with_intercept(X)
        result = fit(X1, y)
        n, p = X1.shape
        rss = float(np.sum(result.residuals ** 2))
        assert result.deviance == pytest.approx(rss)
        assert result.null_deviance == pytest.approx(np.sum((y - y.mean()) ** 2))
        expected_aic = n * np.log(2 * np.pi * rss / n) + n + 2 * (p + 1)
        assert result.aic == pytest.approx(expected_aic)
        assert result.log_likelihood == pytest.approx(-0.5 * (expected_aic - 2 * (p + 1)))
        assert result.df_residual == n - p
        assert result.rank == p
        assert result.n_iter == 1
        assert result.backend_name == 'cpu_qr'

    def test_conf_int_contains_estimate(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(with_intercept(X), y)
        ci = result.conf_int(0.9)
        assert np.all(ci[:, 0] < result.coefficients)
        assert np.all(result.coefficients < ci[:, 1])
        assert np.all(result.conf_int(0.99)[:, 1] > ci[:, 1])

    def test_collinear_raises(self, collinear_data):
        X, y = collinear_data
        with pytest.raises(CollinearityError) as excinfo:
            fit(X, y)
        assert excinfo.value.rank == 2
        assert excinfo.value.expected_rank == 3

    def test_ill_conditioned_raises(self, rng):
        n = 50
        x = rng.standard_normal(n)
        X = np.column_stack([np.ones(n), x, x + 1e-11 * rng.standard_normal(n)])
        y = rng.standard_normal(n)
        with pytest.raises(CollinearityError):
            fit(X, y)

    def test_max_condition_is_configurable(self, rng):
        n = 50
        x = rng.standard_normal(n)
        X = np.column_stack([np.ones(n), x, x + 1e-3 * rng.standard_normal(n)])
        y = rng.standard_normal(n)
        fit(X, y)
        with pytest.raises(CollinearityError) as excinfo:
            fit(X, y, max_condition=10.0)
        assert excinfo.value.threshold == 10.0

    def test_more_columns_than_rows(self, rng):
        with pytest.raises(CollinearityError):
            fit(rng.standard_normal((3, 5)), rng.standard_normal(3))

    def test_saturated_model_warns_in_result(self, rng):
        X = with_intercept(rng.standard_normal((3, 2)))
        result = fit(X, rng.standard_normal(3))
        assert np.isnan(result.dispersion)
        assert any("saturated" in w for w in result.warnings)


class TestBinomialFit:

    def test_score_equations(self, rng):
        n = 500
        X = with_intercept(rng.standard_normal((n, 2)))
        eta = X @ np.array([-0.3, 1.0, -0.7])
        y = (rng.random(n) < 1 / (1 + np.exp(-eta))).astype(float)
        result = fit(X, y, family='binomial')
        score = X.T @ (y - result.fitted_values)
        np.testing.assert_allclose(score, 0.0, atol=1e-6)
        assert result.backend_name == 'cpu_irls'
        assert result.info['converged']
        assert 1 < result.n_iter <= 25

    def test_fisher_information_se(self, rng):
        n = 300
        X = with_intercept(rng.standard_normal((n, 1)))
        y = (rng.random(n) < 1 / (1 + np.exp(-X @ [0.2, 0.8]))).astype(float)
        result = fit(X, y, family='binomial')
        mu = result.fitted_values
        info = X.T @ (X * (mu * (1 - mu))[:, None])
        expected = np.sqrt(np.diag(np.linalg.inv(info)))
        np.testing.assert_allclose(
            result.standard_errors, expected, rtol=ITERATIVE_FP64.rtol * 10,
        )
        assert result.dispersion == 1.0
        assert result.statistic_name == 'z'

    def test_aic_and_deviance(self, rng):
        n = 200
        X = with_intercept(rng.standard_normal((n, 1)))
        y = (rng.random(n) < 0.4).astype(float)
        result = fit(X, y, family='binomial')
        mu = result.fitted_values
        ll = np.sum(y * np.log(mu) + (1 - y) * np.log(1 - mu))
        assert result.log_likelihood == pytest.approx(ll, rel=1e-8)
        assert result.deviance == pytest.approx(-2 * ll, rel=1e-8)
        assert result.aic == pytest.approx(-2 * ll + 2 * 2, rel=1e-8)
        ybar = y.mean()
        null = -2 * n * (ybar * np.log(ybar) + (1 - ybar) * np.log(1 - ybar))
        assert result.null_deviance == pytest.approx(null, rel=1e-8)

    def test_separation_raises(self):
        x = np.array([-3.0, -2.0, -1.5, -1.0, -0.5, 0.5, 1.0, 1.5, 2.0, 3.0])
        y = (x > 0).astype(float)
        with pytest.raises(ConvergenceError) as excinfo:
            fit(with_intercept(x[:, None]), y, family='binomial')
        assert excinfo.value.reason == 'separation'
        assert excinfo.value.iterations == 25

    def test_separation_detected_on_larger_sample(self, rng):
        x = rng.standard_normal(200)
        y = (x > 0).astype(float)
        with pytest.raises(ConvergenceError) as excinfo:
            fit(with_intercept(x[:, None]), y, family='binomial')
        assert excinfo.value.reason == 'separation'

    def test_max_iter_exceeded(self, rng):
        n = 200
        X = with_intercept(rng.standard_normal((n, 1)))
        y = (rng.random(n) < 0.5).astype(float)
        with pytest.raises(ConvergenceError) as excinfo:
            fit(X, y, family='binomial', max_iter=1)
        assert excinfo.value.reason == 'max_iterations'

    def test_non_binary_response(self, rng):
        X = with_intercept(rng.standard_normal((10, 1)))
        with pytest.raises(ValidationError, match="0/1"):
            fit(X, np.arange(10.0), family='binomial')


class TestFitInputs:

    def test_design_matrix_input(self, simple_regression_data):
        X, y, _ = simple_regression_data
        design = DesignMatrix.from_arrays(X, y)
        result = fit(design)
        assert isinstance(result, GLMSolution)
        assert result.term_names == ('x0', 'x1', 'x2')

    def test_y_with_design_rejected(self, simple_regression_data):
        X, y, _ = simple_regression_data
        with pytest.raises(ValidationError, match="omitted"):
            fit(DesignMatrix.from_arrays(X, y), y)

    def test_missing_y(self, simple_regression_data):
        X, _, _ = simple_regression_data
        with pytest.raises(ValidationError, match="required"):
            fit(X)

    def test_length_mismatch(self, rng):
        with pytest.raises(DimensionError):
            fit(rng.standard_normal((10, 2)), rng.standard_normal(9))

    def test_bad_tolerance(self, simple_regression_data):
        X, y, _ = simple_regression_data
        with pytest.raises(ValidationError, match="tol"):
            fit(X, y, tol=0.0)

    def test_unknown_family(self, simple_regression_data):
        X, y, _ = simple_regression_data
        with pytest.raises(ValueError):
            fit(X, y, family='poisson')

    def test_summary_and_repr(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(with_intercept(X), y)
        text = result.summary()
        assert "Generalized Linear Model (gaussian, link=identity)" in text
        assert "Residual deviance" in text
        assert "GLMSolution(family='gaussian'" in repr(result)

    def test_coef_table(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(X, y)
        table = result.coef_table()
        assert list(table) == ['x0', 'x1', 'x2']
        assert table['x1']['estimate'] == pytest.approx(result.coefficients[1])
        assert table['x1']['p_value'] < 1e-10
