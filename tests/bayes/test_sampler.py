"""
Tests for the HMC sampler, convergence diagnostics and Bayesian GLM fits.

Sampling tests use short chains and loose, Monte Carlo sized tolerances.
"""

import warnings

import arviz as az
import numpy as np
import pytest

from pyinference.core.exceptions import NumericalError, ValidationError
from pyinference.core.compute.tolerances import MONTE_CARLO
from pyinference.regression import fit, glm
from pyinference.bayes import BayesSolution, PriorSpec, bayes_glm, fit_bayes
from pyinference.bayes.priors import Flat
from pyinference.bayes._diagnostics import ess, rhat
from pyinference.bayes._hmc import DualAveraging, HMCSampler, _adaptation_windows

SHORT = dict(chains=2, draws=300, warmup=300)


def standard_normal_density(theta):
    return -0.5 * float(theta @ theta), -theta


# =====================================================================
# Diagnostics
# =====================================================================

class TestDiagnostics:

    def test_matches_arviz(self, rng):
        x = rng.standard_normal((3, 200))
        assert rhat(x) == pytest.approx(float(az.rhat(x, method="rank")))
        assert ess(x) == pytest.approx(float(az.ess(x, method="bulk")))

    def test_rhat_iid_near_one(self, rng):
        assert rhat(rng.standard_normal((4, 1000))) == pytest.approx(1.0, abs=0.01)

    def test_rhat_detects_disagreement(self, rng):
        x = rng.standard_normal((4, 500))
        x[0] += 3.0
        assert rhat(x) > 1.1

    def test_rhat_detects_trend(self):
        x = np.tile(np.linspace(0.0, 10.0, 400), (4, 1))
        assert rhat(x) > 1.1

    def test_ess_iid_close_to_total(self, rng):
        value = ess(rng.standard_normal((4, 1000)))
        assert 3000 < value < 5000

    def test_ess_autocorrelated_is_small(self, rng):
        x = np.zeros((4, 1000))
        for c in range(4):
            for t in range(1, 1000):
                x[c, t] = 0.95 * x[c, t - 1] + rng.standard_normal()
        assert ess(x) < 400

    def test_too_few_draws(self):
        assert np.isnan(rhat(np.zeros((2, 3))))
        assert np.isnan(ess(np.zeros((2, 3))))

    def test_constant_chains(self):
        assert np.isnan(rhat(np.ones((2, 10))))
        assert np.isnan(ess(np.ones((2, 10))))

    def test_non_finite_draws(self):
        x = np.zeros((2, 10))
        x[0, 3] = np.nan
        assert np.isnan(rhat(x))


# =====================================================================
# Sampler
# =====================================================================

class TestHMCSampler:

    def test_standard_normal_moments(self, rng):
        sampler = HMCSampler(standard_normal_density, 3)
        chain = sampler.sample(np.zeros(3), draws=2000, warmup=500, rng=rng)
        assert chain.draws.shape == (2000, 3)
        np.testing.assert_allclose(chain.draws.mean(axis=0), 0.0, atol=0.15)
        np.testing.assert_allclose(chain.draws.std(axis=0), 1.0, atol=0.15)
        assert chain.n_divergent == 0
        assert 0.5 < chain.accept_rate <= 1.0

    def test_adapts_step_towards_target(self, rng):
        sampler = HMCSampler(standard_normal_density, 5, target_accept=0.8)
        chain = sampler.sample(np.ones(5), draws=500, warmup=500, rng=rng)
        assert 0.6 < chain.accept_rate < 0.97

    def test_same_seed_same_draws(self):
        sampler = HMCSampler(standard_normal_density, 2)
        a = sampler.sample(np.zeros(2), 50, 50, np.random.default_rng(5))
        b = sampler.sample(np.zeros(2), 50, 50, np.random.default_rng(5))
        np.testing.assert_array_equal(a.draws, b.draws)

    def test_non_finite_start(self, rng):
        sampler = HMCSampler(lambda t: (-np.inf, np.zeros_like(t)), 2)
        with pytest.raises(NumericalError):
            sampler.sample(np.zeros(2), 10, 10, rng)

    def test_divergences_flagged(self, rng):
        # Far too large a step on a narrow density: every proposal blows up
        def narrow(theta):
            return -0.5 * float(theta @ theta) * 1e6, -theta * 1e6

        sampler = HMCSampler(narrow, 2)
        sampler._initial_step = lambda *args: 10.0
        chain = sampler.sample(np.zeros(2), draws=20, warmup=0, rng=rng)
        assert chain.n_divergent == 20
        np.testing.assert_array_equal(chain.draws, 0.0)

    def test_adaptation_windows(self):
        assert _adaptation_windows(10) == []
        windows = _adaptation_windows(1000)
        assert windows[0][0] == 150
        assert windows[-1][1] == 900
        assert windows[0][1] == windows[1][0]

    def test_dual_averaging_lowers_step_on_rejection(self):
        adapter = DualAveraging(1.0, 0.8)
        for _ in range(50):
            step = adapter.update(0.1)
        assert step < 1.0
        assert adapter.final_step < 1.0


# =====================================================================
# Bayesian GLM fits
# =====================================================================

class TestFitBayes:

    def test_gaussian_matches_least_squares(self, linear_table):
        post = bayes_glm("y ~ x + g", linear_table, seed=1, **SHORT)
        mle = glm("y ~ x + g", linear_table)
        assert isinstance(post, BayesSolution)
        assert post.draws.shape == (2, 300, 4)
        np.testing.assert_allclose(post.coefficients, mle.coefficients, atol=0.1)
        np.testing.assert_allclose(post.posterior_sd, mle.standard_errors, rtol=0.35)
        assert post.sigma_draws.shape == (2, 300)
        assert np.mean(post.flat_sigma_draws) == pytest.approx(
            np.sqrt(mle.dispersion), rel=MONTE_CARLO.rtol * 2
        )
        assert np.all(post.rhat < 1.1)
        assert post.backend_name == 'cpu_hmc'

    def test_binomial_close_to_mle(self, logistic_table):
        post = bayes_glm("win ~ kills", logistic_table, family='binomial', seed=2, **SHORT)
        mle = glm("win ~ kills", logistic_table, family='binomial')
        assert post.sigma_draws is None
        np.testing.assert_allclose(post.coefficients, mle.coefficients, atol=0.15)
        assert post.term_names == ('Intercept', 'kills')

    def test_seed_reproducible(self, linear_table):
        a = bayes_glm("y ~ x", linear_table, seed=11, chains=2, draws=50, warmup=50)
        b = bayes_glm("y ~ x", linear_table, seed=11, chains=2, draws=50, warmup=50)
        np.testing.assert_array_equal(a.draws, b.draws)

    def test_parallel_chains_match_serial(self, linear_table):
        opts = dict(seed=3, chains=3, draws=40, warmup=40)
        serial = bayes_glm("y ~ x", linear_table, n_jobs=1, **opts)
        parallel = bayes_glm("y ~ x", linear_table, n_jobs=3, **opts)
        np.testing.assert_array_equal(serial.draws, parallel.draws)

    def test_different_seeds_differ(self, linear_table):
        a = bayes_glm("y ~ x", linear_table, seed=1, chains=1, draws=30, warmup=30)
        b = bayes_glm("y ~ x", linear_table, seed=2, chains=1, draws=30, warmup=30)
        assert not np.array_equal(a.draws, b.draws)

    def test_flat_priors_approach_mle(self, rng):
        n = 300
        X = np.column_stack([np.ones(n), rng.standard_normal(n)])
        y = X @ [0.5, -1.0] + rng.standard_normal(n) * 0.3
        priors = PriorSpec(coefficients=Flat(), intercept=Flat(), auxiliary=Flat())
        post = fit_bayes(X, y, priors=priors, seed=4, **SHORT)
        np.testing.assert_allclose(post.coefficients, fit(X, y).coefficients, atol=0.03)

    def test_priors_from_model_spec(self, linear_table):
        from pyinference.design import ModelSpec
        tight = PriorSpec(coefficients=Flat(), intercept=Flat(), autoscale=False)
        spec = ModelSpec.from_formula("y ~ x", priors=tight)
        post = bayes_glm(spec, linear_table, seed=1, chains=1, draws=20, warmup=20)
        assert post.priors.coefficients == Flat()

    def test_short_run_warns(self, linear_table):
        with pytest.warns(RuntimeWarning, match="effective sample size"):
            post = bayes_glm("y ~ x", linear_table, seed=1, chains=2, draws=10, warmup=10)
        assert any("effective sample size" in w for w in post.warnings)

    def test_non_canonical_link_rejected(self, rng):
        from pyinference.regression.families import Binomial
        X = np.column_stack([np.ones(20), rng.standard_normal(20)])
        y = (rng.random(20) < 0.5).astype(float)
        with pytest.raises(ValidationError, match="canonical"):
            fit_bayes(X, y, family=Binomial(link='identity'))

    @pytest.mark.parametrize("kwargs", [
        dict(chains=0), dict(draws=0), dict(warmup=-1), dict(target_accept=1.0),
    ])
    def test_invalid_options(self, rng, kwargs):
        X = np.column_stack([np.ones(20), rng.standard_normal(20)])
        with pytest.raises(ValidationError):
            fit_bayes(X, rng.standard_normal(20), **kwargs)

    def test_summary(self, linear_table):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            post = bayes_glm("y ~ x", linear_table, seed=1, chains=2, draws=20, warmup=20)
        text = post.summary()
        assert "Bayesian GLM (gaussian, link=identity)" in text
        assert "sigma" in text
        assert "Divergent transitions" in text
        assert "BayesSolution(family='gaussian', chains=2, draws=20" in repr(post)
