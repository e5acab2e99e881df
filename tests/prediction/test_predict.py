"""
Tests for point, draw-based and posterior predictive predictions.
"""

import warnings

import numpy as np
import pandas as pd
import pytest

from pyinference.core.exceptions import SchemaMismatchError, ValidationError
from pyinference.core.table import train_test_split
from pyinference.metrics import evaluate
from pyinference.regression import fit, glm
from pyinference.bayes import bayes_glm
from pyinference.montecarlo import bootstrap
from pyinference.prediction import (
    Prediction,
    marginal_predictions,
    posterior_predict,
    predict,
)


@pytest.fixture
def quiet_bayes():
    def run(*args, **kwargs):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            return bayes_glm(*args, **kwargs)
    return run


class TestPointPredictions:

    def test_training_rows_reproduce_fitted_values(self, linear_table):
        model = glm("y ~ x + g", linear_table)
        pred = predict(model, linear_table)
        assert isinstance(pred, Prediction)
        np.testing.assert_allclose(pred.values, model.fitted_values)
        assert pred.draws is None
        assert len(pred) == len(linear_table)

    def test_binomial_link_and_response(self, logistic_table):
        model = glm("win ~ kills", logistic_table, family='binomial')
        new = pd.DataFrame({'kills': [-1.0, 0.0, 2.0]})
        eta = predict(model, new, type='link').values
        np.testing.assert_allclose(eta, model.coefficients[0] + model.coefficients[1] * new['kills'])
        mu = predict(model, new).values
        np.testing.assert_allclose(mu, 1.0 / (1.0 + np.exp(-eta)))
        assert np.all(np.diff(mu) > 0)

    def test_wald_interval(self, logistic_table):
        model = glm("win ~ kills", logistic_table, family='binomial')
        new = pd.DataFrame({'kills': [-1.0, 0.0, 2.0]})
        pred = predict(model, new)
        ci = pred.interval(0.9)
        assert ci.shape == (3, 2)
        assert np.all(ci[:, 0] < pred.values)
        assert np.all(pred.values < ci[:, 1])
        assert np.all((ci >= 0.0) & (ci <= 1.0))
        wider = pred.interval(0.99)
        assert np.all(wider[:, 1] > ci[:, 1])

    def test_link_standard_error(self, linear_table):
        model = glm("y ~ x", linear_table)
        pred = predict(model, {'x': [0.0]})
        assert pred.se[0] == pytest.approx(model.standard_errors[0])

    def test_unseen_level(self, linear_table):
        model = glm("y ~ x + g", linear_table)
        with pytest.raises(SchemaMismatchError) as excinfo:
            predict(model, pd.DataFrame({'x': [0.0], 'g': ['z']}))
        assert excinfo.value.unseen_levels == ('z',)

    def test_missing_predictor(self, linear_table):
        model = glm("y ~ x + g", linear_table)
        with pytest.raises(SchemaMismatchError):
            predict(model, pd.DataFrame({'x': [0.0]}))

    def test_standardized_model_uses_training_scaling(self, linear_table):
        model = glm("y ~ x", linear_table, standardize=['x'])
        raw = glm("y ~ x", linear_table)
        new = {'x': [-2.0, 0.5, 3.0]}
        np.testing.assert_allclose(predict(model, new).values, predict(raw, new).values)

    def test_array_design(self, simple_regression_data):
        X, y, _ = simple_regression_data
        model = fit(X, y)
        pred = predict(model, X[:5])
        np.testing.assert_allclose(pred.values, X[:5] @ model.coefficients)
        np.testing.assert_allclose(predict(model, X[0]).values, [X[0] @ model.coefficients])
        with pytest.raises(ValidationError, match="columns"):
            predict(model, np.ones((2, 5)))

    def test_invalid_type(self, linear_table):
        model = glm("y ~ x", linear_table)
        with pytest.raises(ValidationError, match="type"):
            predict(model, linear_table, type='probability')

    def test_not_a_fit(self, linear_table):
        with pytest.raises(ValidationError, match="fit"):
            predict("y ~ x", linear_table)

    def test_saturated_least_squares_reproduces_response(self, rng):
        X = np.column_stack([np.ones(4), rng.standard_normal((4, 3))])
        y = rng.standard_normal(4)
        model = fit(X, y)
        np.testing.assert_allclose(predict(model, X).values, y, atol=1e-10)
        assert np.isnan(model.dispersion)

    def test_least_squares_residuals_sum_to_zero(self, simple_regression_data):
        X, y, _ = simple_regression_data
        X1 = np.column_stack([np.ones(len(y)), X])
        model = fit(X1, y)
        fitted = predict(model, X1).values
        np.testing.assert_allclose(fitted + model.residuals, y)
        assert abs(np.sum(y - fitted)) < 1e-9


class TestInterceptOnlyClassifier:
    """An intercept-only logistic fit on balanced outcomes carries no signal."""

    @pytest.fixture
    def balanced(self):
        return pd.DataFrame({'y': [0, 1] * 50})

    def test_predicts_base_rate(self, balanced):
        model = glm("y ~ 1", balanced, family='binomial')
        assert model.coefficients[0] == pytest.approx(0.0, abs=1e-8)
        pred = predict(model, balanced)
        np.testing.assert_allclose(pred.values, 0.5, atol=1e-8)
        report = evaluate(balanced['y'], pred.values)
        assert report.accuracy == 0.5
        assert report.auc == pytest.approx(0.5)

    def test_held_out_rows(self, balanced):
        train, test = train_test_split(balanced, 0.25, seed=3)
        model = glm("y ~ 1", train, family='binomial')
        pred = predict(model, test)
        np.testing.assert_allclose(pred.values, train['y'].mean())
        report = evaluate(test['y'], pred.values)
        positive_rate = test['y'].mean()
        expected = positive_rate if pred.values[0] >= 0.5 else 1.0 - positive_rate
        assert report.accuracy == pytest.approx(expected)
        assert report.accuracy == pytest.approx(0.5, abs=0.25)
        assert report.auc == pytest.approx(0.5)


class TestDrawPredictions:

    def test_bootstrap_draws(self, linear_table):
        boot = bootstrap(linear_table, "y ~ x + g", times=40, seed=1)
        new = pd.DataFrame({'x': [0.0, 1.0], 'g': ['a', 'c']})
        pred = predict(boot, new)
        assert pred.draws.shape == (40, 2)
        np.testing.assert_allclose(pred.values, predict(boot.apparent, new).values)
        ci = pred.interval(0.9)
        assert np.all(ci[:, 0] <= ci[:, 1])

    def test_bayes_draws(self, linear_table, quiet_bayes):
        post = quiet_bayes("y ~ x", linear_table, seed=1, chains=2, draws=50, warmup=50)
        pred = predict(post, {'x': [0.0, 1.0, 2.0]})
        assert pred.draws.shape == (100, 3)
        np.testing.assert_allclose(pred.values, pred.draws.mean(axis=0))
        assert pred.se is None

    def test_interval_without_uncertainty(self, linear_table):
        model = glm("y ~ x", linear_table)
        pred = marginal_predictions(model, linear_table, 'x', [0.0])
        with pytest.raises(ValidationError, match="uncertainty"):
            pred.interval()


class TestPosteriorPredict:

    def test_binomial_outcomes_are_binary(self, logistic_table, quiet_bayes):
        post = quiet_bayes("win ~ kills", logistic_table, family='binomial',
                           seed=2, chains=1, draws=40, warmup=40)
        pred = posterior_predict(post, {'kills': [-2.0, 0.0, 2.0]}, seed=3)
        assert pred.type == 'outcome'
        assert pred.draws.shape == (40, 3)
        assert set(np.unique(pred.draws)) <= {0.0, 1.0}

    def test_gaussian_outcomes_are_wider_than_means(self, linear_table, quiet_bayes):
        post = quiet_bayes("y ~ x", linear_table, seed=2, chains=2, draws=100, warmup=100)
        new = {'x': [0.5]}
        means = predict(post, new).draws
        outcomes = posterior_predict(post, new, seed=4).draws
        assert outcomes.std() > 3 * means.std()

    def test_bootstrap_source(self, linear_table):
        boot = bootstrap(linear_table, "y ~ x", times=30, seed=1)
        pred = posterior_predict(boot, {'x': [0.0, 1.0]}, seed=0)
        assert pred.draws.shape == (30, 2)

    def test_seed_reproducible(self, linear_table):
        boot = bootstrap(linear_table, "y ~ x", times=10, seed=1)
        a = posterior_predict(boot, {'x': [0.0]}, seed=5)
        b = posterior_predict(boot, {'x': [0.0]}, seed=5)
        np.testing.assert_array_equal(a.draws, b.draws)

    def test_point_fit_rejected(self, linear_table):
        model = glm("y ~ x", linear_table)
        with pytest.raises(ValidationError, match="draws"):
            posterior_predict(model, linear_table)


class TestMarginalPredictions:

    def test_categorical_levels(self, linear_table):
        model = glm("y ~ x + g", linear_table)
        pred = marginal_predictions(model, linear_table, 'g', ['a', 'b', 'c'])
        assert pred.labels == ('a', 'b', 'c')
        x_mean = linear_table['x'].mean()
        b = model.coefficients
        np.testing.assert_allclose(
            pred.values, [b[0] + b[1] * x_mean, b[0] + b[1] * x_mean + b[2],
                          b[0] + b[1] * x_mean + b[3]],
        )

    def test_draw_based(self, linear_table):
        boot = bootstrap(linear_table, "y ~ x + g", times=20, seed=1)
        pred = marginal_predictions(boot, linear_table, 'x', [-1.0, 0.0, 1.0])
        assert pred.draws.shape == (20, 3)
        assert np.all(np.diff(pred.values) > 0)

    def test_unknown_variable(self, linear_table):
        model = glm("y ~ x", linear_table)
        with pytest.raises(ValidationError, match="not a predictor"):
            marginal_predictions(model, linear_table, 'g', ['a'])

    def test_empty_values(self, linear_table):
        model = glm("y ~ x", linear_table)
        with pytest.raises(ValidationError, match="at least one"):
            marginal_predictions(model, linear_table, 'x', [])

    def test_array_fit_rejected(self, simple_regression_data):
        X, y, _ = simple_regression_data
        with pytest.raises(ValidationError, match="table"):
            marginal_predictions(fit(X, y), X, 'x0', [0.0])
