# app/ML_framework_evaluation/core/evaluator.py
# Metric catalog: classification + regression scores against the held-out truth

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    confusion_matrix,
    f1_score,
    mean_absolute_error,
    mean_squared_error,
    precision_score,
    recall_score,
    roc_auc_score,
)
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import InvalidArgument, UnsupportedOutput
from .logger import get_logger
from .model_zoo import CLASSIFICATION, REGRESSION

logger = get_logger("evaluator")

METRIC_CATALOG: Dict[str, Dict[str, Any]] = {
    "accuracy": {"mode": CLASSIFICATION, "maximize": True, "needs_positive": False},
    "precision": {"mode": CLASSIFICATION, "maximize": True, "needs_positive": True},
    "recall": {"mode": CLASSIFICATION, "maximize": True, "needs_positive": True},
    "specificity": {"mode": CLASSIFICATION, "maximize": True, "needs_positive": True},
    "f1": {"mode": CLASSIFICATION, "maximize": True, "needs_positive": True},
    "roc_auc": {"mode": CLASSIFICATION, "maximize": True, "needs_positive": True},
    "rmse": {"mode": REGRESSION, "maximize": False, "needs_positive": False},
    "rsq": {"mode": REGRESSION, "maximize": True, "needs_positive": False},
    "mae": {"mode": REGRESSION, "maximize": False, "needs_positive": False},
}


def is_maximized(metric: str) -> bool:
    return _catalog_entry(metric)["maximize"]


def validate_metrics(
    metric_names: Iterable[str],
    mode: str,
    n_classes: Optional[int] = None,
    positive_class: Any = None,
) -> List[str]:
    """Checks names against the catalog and the model mode; returns them in request order."""
    names = list(metric_names)
    if not names:
        raise InvalidArgument("At least one metric must be requested", field="metrics")
    for name in names:
        entry = _catalog_entry(name)
        if entry["mode"] != mode:
            raise UnsupportedOutput(
                f"Metric '{name}' needs a {entry['mode']} model, got a {mode} model",
                metric=name,
                mode=mode,
            )
        if n_classes == 2 and entry["needs_positive"] and positive_class is None:
            raise InvalidArgument(
                f"Metric '{name}' on a binary target needs an explicit positive_class",
                field="positive_class",
                metric=name,
            )
    return names


def compute_metrics(
    metric_names: Sequence[str],
    y_true: pd.Series,
    mode: str,
    predictions: Optional[pd.Series] = None,
    probabilities: Optional[pd.DataFrame] = None,
    classes: Sequence[Any] = (),
    positive_class: Any = None,
) -> Dict[str, float]:
    classes = list(classes)
    n_classes = len(classes) if mode == CLASSIFICATION else None
    names = validate_metrics(metric_names, mode, n_classes, positive_class)

    dtype = None if mode == CLASSIFICATION else float
    y_true = np.asarray(y_true, dtype=dtype)
    y_pred = np.asarray(predictions, dtype=dtype) if predictions is not None else None

    results: Dict[str, float] = {}
    for name in names:
        if name == "roc_auc":
            if probabilities is None:
                raise InvalidArgument("roc_auc needs class probabilities", metric=name)
            results[name] = _roc_auc(y_true, probabilities, classes, positive_class)
            continue
        if y_pred is None:
            raise InvalidArgument(f"Metric '{name}' needs predictions", metric=name)
        if mode == CLASSIFICATION:
            results[name] = _classification_metric(name, y_true, y_pred, classes, positive_class)
        else:
            results[name] = _regression_metric(name, y_true, y_pred)

    return {k: float(v) for k, v in results.items()}


def build_confusion_matrix(y_true, y_pred, classes: Sequence[Any]) -> List[List[int]]:
    """Rows are true classes, columns predicted classes, both in `classes` order."""
    cm = confusion_matrix(np.asarray(y_true), np.asarray(y_pred), labels=list(classes))
    return cm.tolist()


# === Classification ===
def _classification_metric(name, y_true, y_pred, classes, positive_class) -> float:
    if name == "accuracy":
        return accuracy_score(y_true, y_pred)

    binary = len(classes) == 2
    if binary:
        negative_class = classes[1] if classes[0] == positive_class else classes[0]
        if name == "precision":
            return precision_score(y_true, y_pred, labels=classes, pos_label=positive_class, zero_division=0)
        if name == "recall":
            return recall_score(y_true, y_pred, labels=classes, pos_label=positive_class, zero_division=0)
        if name == "f1":
            return f1_score(y_true, y_pred, labels=classes, pos_label=positive_class, zero_division=0)
        if name == "specificity":
            return recall_score(y_true, y_pred, labels=classes, pos_label=negative_class, zero_division=0)

    # Multiclass: macro average over the training classes
    if name == "precision":
        return precision_score(y_true, y_pred, labels=classes, average="macro", zero_division=0)
    if name == "recall":
        return recall_score(y_true, y_pred, labels=classes, average="macro", zero_division=0)
    if name == "f1":
        return f1_score(y_true, y_pred, labels=classes, average="macro", zero_division=0)
    if name == "specificity":
        return _macro_specificity(y_true, y_pred, classes)
    raise InvalidArgument(f"Unknown metric '{name}'", metric=name)


def _macro_specificity(y_true, y_pred, classes) -> float:
    cm = confusion_matrix(y_true, y_pred, labels=list(classes))
    total = cm.sum()
    scores = []
    for i in range(len(classes)):
        tp = cm[i, i]
        fp = cm[:, i].sum() - tp
        fn = cm[i, :].sum() - tp
        tn = total - tp - fp - fn
        scores.append(tn / (tn + fp) if (tn + fp) > 0 else 0.0)
    return float(np.mean(scores))


def _roc_auc(y_true, probabilities: pd.DataFrame, classes, positive_class) -> float:
    proba = np.asarray(probabilities, dtype=float)
    try:
        if len(classes) == 2:
            pos_index = classes.index(positive_class)
            return roc_auc_score((y_true == positive_class).astype(int), proba[:, pos_index])
        # Hand & Till: macro average over all class pairs
        return roc_auc_score(y_true, proba, multi_class="ovo", average="macro", labels=classes)
    except ValueError as e:
        logger.warning(f"roc_auc undefined for this sample: {e}")
        return float("nan")


# === Regression ===
def _regression_metric(name, y_true, y_pred) -> float:
    if name == "rmse":
        return np.sqrt(mean_squared_error(y_true, y_pred))
    if name == "mae":
        return mean_absolute_error(y_true, y_pred)
    if name == "rsq":
        # squared correlation, bounded to [0, 1]
        if len(y_true) < 2 or np.std(y_true) == 0 or np.std(y_pred) == 0:
            return 0.0
        r = np.corrcoef(y_true, y_pred)[0, 1]
        return float(r ** 2) if np.isfinite(r) else 0.0
    raise InvalidArgument(f"Unknown metric '{name}'", metric=name)


def _catalog_entry(metric: str) -> Dict[str, Any]:
    entry = METRIC_CATALOG.get(metric)
    if entry is None:
        raise InvalidArgument(
            f"Unknown metric '{metric}'. Known: {sorted(METRIC_CATALOG)}",
            field="metrics",
            value=metric,
        )
    return entry
