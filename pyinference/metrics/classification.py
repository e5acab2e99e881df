"""
Binary classification metrics.

Labels are binary: 0/1 numbers, booleans, or a two-level categorical
whose positive class defaults to the second sorted level. Predicted
classes come from thresholding probabilities at `threshold`
(probability >= threshold is the positive class).

Metrics whose denominator is empty are undefined. The standalone
functions raise UndefinedMetricError; evaluate() reports them as None
and lists them in ClassificationReport.undefined.

ROC: thresholds are the distinct predicted probabilities in increasing
order followed by +inf; each threshold contributes one (FPR, TPR) point,
from (1, 1) at the smallest probability down to (0, 0) at +inf. AUC is
the trapezoidal integral under those points.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray
from sklearn import metrics as skm

from pyinference.core.exceptions import UndefinedMetricError, ValidationError
from pyinference.core.validation import (
    check_array,
    check_consistent_length,
    check_finite,
    check_probability,
)


@dataclass(frozen=True)
class RocCurve:
    """ROC points in increasing threshold order."""
    fpr: NDArray[np.floating[Any]]
    tpr: NDArray[np.floating[Any]]
    thresholds: NDArray[np.floating[Any]]

    def __len__(self) -> int:
        return len(self.thresholds)


@dataclass(frozen=True)
class ClassificationReport:
    """
    Metrics of one set of probabilistic predictions.

    Attributes:
        accuracy: Share of correct predicted classes
        precision: TP / (TP + FP), None if undefined
        recall: TP / (TP + FN), None if undefined
        roc: ROC curve, None if undefined
        auc: Area under the ROC curve, None if undefined
        confusion: 2x2 counts [[TN, FP], [FN, TP]]
        threshold: Probability threshold for the positive class
        positive: Label treated as the positive class
        undefined: Names of the metrics that are undefined
    """
    accuracy: float
    precision: float | None
    recall: float | None
    roc: RocCurve | None
    auc: float | None
    confusion: NDArray[np.integer[Any]]
    threshold: float
    positive: Any
    undefined: tuple[str, ...]

    @property
    def n(self) -> int:
        return int(self.confusion.sum())

    def as_dict(self) -> dict[str, Any]:
        return {
            'accuracy': self.accuracy,
            'precision': self.precision,
            'recall': self.recall,
            'auc': self.auc,
            'roc_curve': None if self.roc is None else (self.roc.fpr, self.roc.tpr),
        }

    def summary(self) -> str:
        def fmt(v):
            return "undefined" if v is None else f"{v:.4f}"

        (tn, fp), (fn, tp) = self.confusion
        return "\n".join([
            f"Classification report (positive={self.positive!r}, threshold={self.threshold})",
            f"Observations: {self.n}",
            f"Accuracy:  {fmt(self.accuracy)}",
            f"Precision: {fmt(self.precision)}",
            f"Recall:    {fmt(self.recall)}",
            f"AUC:       {fmt(self.auc)}",
            f"Confusion: TN={tn} FP={fp} FN={fn} TP={tp}",
        ])


# =====================================================================
# Standalone metrics
# =====================================================================

def accuracy(true_labels: ArrayLike, predicted_labels: ArrayLike, *, positive: Any = None) -> float:
    """Share of predictions equal to the true label."""
    y, _ = binary_labels(true_labels, positive, name='true_labels')
    y_hat, _ = binary_labels(predicted_labels, _positive_of(true_labels, positive),
                             name='predicted_labels')
    check_consistent_length(y, y_hat, names=('true_labels', 'predicted_labels'))
    return float(skm.accuracy_score(y, y_hat))


def confusion_matrix(
    true_labels: ArrayLike, predicted_labels: ArrayLike, *, positive: Any = None,
) -> NDArray[np.integer[Any]]:
    """2x2 counts [[TN, FP], [FN, TP]]."""
    y, _ = binary_labels(true_labels, positive, name='true_labels')
    y_hat, _ = binary_labels(predicted_labels, _positive_of(true_labels, positive),
                             name='predicted_labels')
    check_consistent_length(y, y_hat, names=('true_labels', 'predicted_labels'))
    return skm.confusion_matrix(y, y_hat, labels=[0, 1])


def precision(true_labels: ArrayLike, predicted_labels: ArrayLike, *, positive: Any = None) -> float:
    """
    TP / (TP + FP).

    Raises:
        UndefinedMetricError: No predicted positives, or only one class in
            the true labels
    """
    cm = confusion_matrix(true_labels, predicted_labels, positive=positive)
    _require_both_classes(cm, 'precision')
    if cm[0, 1] + cm[1, 1] == 0:
        raise UndefinedMetricError("precision is undefined: no predicted positives",
                                   metric='precision')
    return float(cm[1, 1] / (cm[0, 1] + cm[1, 1]))


def recall(true_labels: ArrayLike, predicted_labels: ArrayLike, *, positive: Any = None) -> float:
    """
    TP / (TP + FN).

    Raises:
        UndefinedMetricError: Only one class in the true labels
    """
    cm = confusion_matrix(true_labels, predicted_labels, positive=positive)
    _require_both_classes(cm, 'recall')
    return float(cm[1, 1] / (cm[1, 0] + cm[1, 1]))


def roc_curve(true_labels: ArrayLike, probabilities: ArrayLike, *, positive: Any = None) -> RocCurve:
    """
    ROC curve over every distinct predicted probability.

    Raises:
        UndefinedMetricError: Only one class in the true labels
    """
    y, _ = binary_labels(true_labels, positive, name='true_labels')
    p = _probabilities(probabilities)
    check_consistent_length(y, p, names=('true_labels', 'probabilities'))
    if len(np.unique(y)) < 2:
        raise UndefinedMetricError(
            "ROC curve is undefined: true labels contain a single class", metric='roc_curve'
        )

    fpr, tpr, thresholds = skm.roc_curve(y, p, drop_intermediate=False)
    thresholds = thresholds[::-1].astype(np.float64)
    thresholds[-1] = np.inf
    return RocCurve(fpr=fpr[::-1], tpr=tpr[::-1], thresholds=thresholds)


def roc_auc(true_labels: ArrayLike, probabilities: ArrayLike, *, positive: Any = None) -> float:
    """Trapezoidal area under the ROC curve."""
    curve = roc_curve(true_labels, probabilities, positive=positive)
    return float(skm.auc(curve.fpr, curve.tpr))


# =====================================================================
# Report
# =====================================================================

def evaluate(
    true_labels: ArrayLike,
    probabilities: ArrayLike,
    *,
    threshold: float = 0.5,
    positive: Any = None,
) -> ClassificationReport:
    """
    Evaluate predicted probabilities against true binary labels.

    Args:
        true_labels: Binary labels (0/1, bool, or two categorical levels)
        probabilities: Predicted probability of the positive class
        threshold: probability >= threshold predicts the positive class
        positive: Positive label (default 1/True, or the second sorted
            level of categorical labels)

    Returns:
        ClassificationReport. With a single class in true_labels,
        precision, recall, ROC and AUC are None and named in `undefined`.

    Raises:
        ValidationError: true_labels hold a single categorical level and
            `positive` is not given. Pass positive= (the level itself, or
            the absent other level) to get a report with precision,
            recall, ROC and AUC undefined.

    Example:
        >>> r = evaluate([1, 1, 0, 0], [0.9, 0.8, 0.2, 0.6])
        >>> r.accuracy, r.precision, r.recall
        (0.75, 0.6666666666666666, 1.0)
    """
    threshold = check_probability(threshold, 'threshold', inclusive=True)
    y, positive = binary_labels(true_labels, positive, name='true_labels')
    p = _probabilities(probabilities)
    check_consistent_length(y, p, names=('true_labels', 'probabilities'))
    if len(y) == 0:
        raise ValidationError("true_labels: no observations to evaluate")

    y_hat = (p >= threshold).astype(np.int64)
    cm = skm.confusion_matrix(y, y_hat, labels=[0, 1])
    acc = float(skm.accuracy_score(y, y_hat))

    undefined: list[str] = []
    prec = rec = auc = None
    roc = None
    if len(np.unique(y)) < 2:
        undefined.extend(['precision', 'recall', 'roc_curve', 'auc'])
    else:
        rec = float(cm[1, 1] / (cm[1, 0] + cm[1, 1]))
        if cm[0, 1] + cm[1, 1] > 0:
            prec = float(cm[1, 1] / (cm[0, 1] + cm[1, 1]))
        else:
            undefined.append('precision')
        roc = roc_curve(y, p)
        auc = float(skm.auc(roc.fpr, roc.tpr))

    return ClassificationReport(
        accuracy=acc,
        precision=prec,
        recall=rec,
        roc=roc,
        auc=auc,
        confusion=cm,
        threshold=threshold,
        positive=positive,
        undefined=tuple(undefined),
    )


# =====================================================================
# Helpers
# =====================================================================

def binary_labels(labels: ArrayLike, positive: Any = None, *, name: str = 'labels'):
    """
    Convert labels to a 0/1 integer array.

    Returns:
        (y, positive) with the positive label actually used

    Raises:
        ValidationError: More than two distinct labels, or numeric labels
            other than 0/1 without an explicit positive label
    """
    series = pd.Series(np.asarray(labels).ravel() if not isinstance(labels, pd.Series) else labels)
    if series.isna().any():
        raise ValidationError(f"{name}: contains missing values")
    values = series.to_numpy()
    distinct = pd.unique(values)

    if positive is None:
        positive = _default_positive(series, distinct, name)
    elif len(distinct) > 2:
        raise ValidationError(f"{name}: expected at most 2 classes, got {len(distinct)}")

    if len(distinct) == 2 and positive not in list(distinct):
        raise ValidationError(f"positive: {positive!r} is not one of the labels {list(distinct)}")
    return (values == positive).astype(np.int64), positive


def _default_positive(series: pd.Series, distinct, name: str):
    if len(distinct) > 2:
        raise ValidationError(f"{name}: expected at most 2 classes, got {len(distinct)}")
    if pd.api.types.is_bool_dtype(series.dtype):
        return True
    if pd.api.types.is_numeric_dtype(series.dtype):
        if not set(np.asarray(distinct, dtype=np.float64)) <= {0.0, 1.0}:
            raise ValidationError(
                f"{name}: numeric labels must be 0/1, got {sorted(distinct.tolist())}; "
                f"pass positive= to choose the positive class"
            )
        return 1
    levels = sorted(str(v) for v in distinct)
    if len(levels) < 2:
        raise ValidationError(
            f"{name}: a single categorical level {levels}; pass positive= to "
            f"say whether it is the positive class"
        )
    return next(v for v in distinct if str(v) == levels[1])


def _positive_of(true_labels: ArrayLike, positive: Any) -> Any:
    return binary_labels(true_labels, positive, name='true_labels')[1]


def _probabilities(probabilities: ArrayLike) -> NDArray[np.floating[Any]]:
    p = check_array(probabilities, 'probabilities').ravel()
    check_finite(p, 'probabilities')
    if np.any((p < 0.0) | (p > 1.0)):
        raise ValidationError("probabilities: values must lie in [0, 1]")
    return p


def _require_both_classes(cm: NDArray, metric: str) -> None:
    if cm[0].sum() == 0 or cm[1].sum() == 0:
        raise UndefinedMetricError(
            f"{metric} is undefined: true labels contain a single class", metric=metric
        )
