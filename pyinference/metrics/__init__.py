"""
Classification metrics.

Public API:
    evaluate(true_labels, probabilities, threshold=0.5) -> ClassificationReport
    accuracy, precision, recall, confusion_matrix(true, predicted)
    roc_curve, roc_auc(true, probabilities)

Undefined metrics (a single class in the labels, no predicted positives)
raise UndefinedMetricError from the standalone functions and are reported
as None by evaluate().
"""

from pyinference.metrics.classification import (
    ClassificationReport,
    RocCurve,
    evaluate,
    accuracy,
    precision,
    recall,
    confusion_matrix,
    roc_curve,
    roc_auc,
    binary_labels,
)

__all__ = [
    "evaluate",
    "ClassificationReport",
    "RocCurve",
    "accuracy",
    "precision",
    "recall",
    "confusion_matrix",
    "roc_curve",
    "roc_auc",
    "binary_labels",
]
