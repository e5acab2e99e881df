"""
PyInference: regression and inference for tabular data.

Fits generalized linear models on observation tables three ways and
summarizes them on a common footing:

    regression: Maximum likelihood GLMs (QR least squares, IRLS)
    bayes: Bayesian GLMs sampled by Hamiltonian Monte Carlo
    montecarlo: Nonparametric case bootstrap of a GLM
    inference: Percentile and highest-density interval summaries
    prediction: Predictions and posterior predictive simulation
    metrics: Binary classification metrics
    design: Formulas, categorical encoding and design matrices
"""

__version__ = "0.1.0"

from pyinference import core
from pyinference import design
from pyinference import regression
from pyinference import bayes
from pyinference import montecarlo
from pyinference import inference
from pyinference import prediction
from pyinference import metrics

from pyinference.design import ModelSpec, build_design
from pyinference.regression import fit, glm
from pyinference.bayes import PriorSpec, bayes_glm, fit_bayes
from pyinference.montecarlo import bootstrap
from pyinference.inference import summarize
from pyinference.prediction import predict, posterior_predict, marginal_predictions
from pyinference.metrics import evaluate

__all__ = [
    "__version__",
    "core",
    "design",
    "regression",
    "bayes",
    "montecarlo",
    "inference",
    "prediction",
    "metrics",
    "ModelSpec",
    "build_design",
    "fit",
    "glm",
    "PriorSpec",
    "bayes_glm",
    "fit_bayes",
    "bootstrap",
    "summarize",
    "predict",
    "posterior_predict",
    "marginal_predictions",
    "evaluate",
]
