"""
Numerical thresholds and tolerance tiers.

Estimator defaults live here so that every entry point shares one
definition. Tolerance tiers are used by the test-suite to compare
estimates against closed-form or reference values.
"""

from dataclasses import dataclass


# Maximum condition number of a (weighted) design matrix. Above this the
# coefficient solve is refused with CollinearityError. At cond(X) = 1e10
# roughly six significant digits of the coefficients survive in float64.
CONDITION_THRESHOLD = 1e10

# IRLS: converged when max |beta_new - beta_old| < IRLS_TOL.
IRLS_TOL = 1e-8
IRLS_MAX_ITER = 25

# Bootstrap aborts when more than this share of replicates fail.
MAX_FAILURE_RATE = 0.5

# HMC energy error above which a transition counts as divergent.
DIVERGENCE_THRESHOLD = 1000.0


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Direct solves (QR): agree with closed form to near machine precision
DIRECT_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='direct_fp64',
    description='QR least squares, double precision',
)

# Iterative solves (IRLS): limited by the convergence tolerance
ITERATIVE_FP64 = ToleranceTier(
    rtol=1e-6,
    atol=1e-8,
    name='iterative_fp64',
    description='IRLS at default tolerance',
)

# Monte Carlo estimates: limited by simulation noise
MONTE_CARLO = ToleranceTier(
    rtol=5e-2,
    atol=5e-2,
    name='monte_carlo',
    description='bootstrap / posterior sampling summaries',
)
