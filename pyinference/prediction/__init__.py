"""
Prediction from fitted models.

Public API:
    predict(fit, new_data, type="response") -> Prediction
    posterior_predict(fit, new_data, seed=...) -> Prediction
    marginal_predictions(fit, data, variable, values) -> Prediction

New rows are encoded with the training encoding table; unseen
categorical levels raise SchemaMismatchError.
"""

from pyinference.prediction.predict import (
    Prediction,
    predict,
    posterior_predict,
    marginal_predictions,
)

__all__ = [
    "Prediction",
    "predict",
    "posterior_predict",
    "marginal_predictions",
]
