import numpy as np
import pandas as pd
import pytest

from app.ML_framework_evaluation.core.evaluator import (
    build_confusion_matrix,
    compute_metrics,
    is_maximized,
    validate_metrics,
)
from app.ML_framework_evaluation.core.errors import InvalidArgument, UnsupportedOutput

TRUTH = pd.Series(["yes", "yes", "no", "no", "yes"])
PRED = pd.Series(["yes", "no", "no", "yes", "yes"])
PROBA = pd.DataFrame({
    "prob_no": [0.1, 0.6, 0.8, 0.4, 0.2],
    "prob_yes": [0.9, 0.4, 0.2, 0.6, 0.8],
})


def test_binary_classification_metrics():
    scores = compute_metrics(
        ["accuracy", "precision", "recall", "specificity", "f1", "roc_auc"],
        TRUTH,
        "classification",
        predictions=PRED,
        probabilities=PROBA,
        classes=["no", "yes"],
        positive_class="yes",
    )

    assert scores["accuracy"] == pytest.approx(0.6)
    assert scores["precision"] == pytest.approx(2 / 3)
    assert scores["recall"] == pytest.approx(2 / 3)
    assert scores["specificity"] == pytest.approx(0.5)
    assert scores["f1"] == pytest.approx(2 / 3)
    assert scores["roc_auc"] == pytest.approx(5 / 6)


def test_positive_class_changes_binary_scores():
    scores = compute_metrics(
        ["recall", "specificity"],
        TRUTH,
        "classification",
        predictions=PRED,
        classes=["no", "yes"],
        positive_class="no",
    )
    assert scores["recall"] == pytest.approx(0.5)
    assert scores["specificity"] == pytest.approx(2 / 3)


def test_regression_metrics():
    truth = pd.Series([1.0, 2.0, 3.0, 4.0])
    pred = pd.Series([1.0, 2.0, 3.0, 5.0])
    scores = compute_metrics(["rmse", "mae", "rsq"], truth, "regression", predictions=pred)

    assert scores["rmse"] == pytest.approx(0.5)
    assert scores["mae"] == pytest.approx(0.25)
    assert scores["rsq"] == pytest.approx(42.25 / 43.75)


def test_rsq_of_constant_predictions_is_zero():
    scores = compute_metrics(["rsq"], pd.Series([1.0, 2.0, 3.0]), "regression", predictions=pd.Series([2.0] * 3))
    assert scores["rsq"] == 0.0


def test_multiclass_metrics_are_macro_averaged():
    classes = ["a", "b", "c"]
    truth = pd.Series(["a", "a", "b", "b", "c", "c"])
    pred = pd.Series(["a", "b", "b", "b", "c", "a"])
    scores = compute_metrics(
        ["accuracy", "recall", "specificity"], truth, "classification", predictions=pred, classes=classes
    )

    assert scores["accuracy"] == pytest.approx(4 / 6)
    # per-class recall: a 1/2, b 2/2, c 1/2
    assert scores["recall"] == pytest.approx((0.5 + 1.0 + 0.5) / 3)
    # per-class specificity: a 3/4, b 3/4, c 4/4
    assert scores["specificity"] == pytest.approx((0.75 + 0.75 + 1.0) / 3)


def test_multiclass_roc_auc_perfect_separation():
    classes = [0, 1, 2]
    truth = pd.Series([0, 1, 2, 0, 1, 2])
    proba = pd.DataFrame(np.eye(3)[[0, 1, 2, 0, 1, 2]], columns=["prob_0", "prob_1", "prob_2"])
    scores = compute_metrics(["roc_auc"], truth, "classification", probabilities=proba, classes=classes)
    assert scores["roc_auc"] == pytest.approx(1.0)


def test_roc_auc_with_single_class_in_sample_is_nan():
    truth = pd.Series(["yes", "yes"])
    proba = pd.DataFrame({"prob_no": [0.3, 0.2], "prob_yes": [0.7, 0.8]})
    scores = compute_metrics(
        ["roc_auc"], truth, "classification", probabilities=proba, classes=["no", "yes"], positive_class="yes"
    )
    assert np.isnan(scores["roc_auc"])


def test_metric_for_wrong_mode():
    with pytest.raises(UnsupportedOutput):
        validate_metrics(["roc_auc"], "regression")
    with pytest.raises(UnsupportedOutput):
        validate_metrics(["rmse"], "classification", n_classes=2)


def test_unknown_or_empty_metric_list():
    with pytest.raises(InvalidArgument):
        validate_metrics(["brier"], "classification")
    with pytest.raises(InvalidArgument):
        validate_metrics([], "regression")


def test_binary_metric_needs_positive_class():
    with pytest.raises(InvalidArgument) as exc:
        validate_metrics(["accuracy", "f1"], "classification", n_classes=2)
    assert exc.value.context["metric"] == "f1"
    assert validate_metrics(["accuracy"], "classification", n_classes=2) == ["accuracy"]


def test_metric_direction():
    assert is_maximized("rsq")
    assert is_maximized("accuracy")
    assert not is_maximized("rmse")
    assert not is_maximized("mae")


def test_confusion_matrix_follows_class_order():
    cm = build_confusion_matrix(TRUTH, PRED, ["no", "yes"])
    assert cm == [[1, 1], [1, 2]]
