import numpy as np
import pandas as pd
import pytest

from app.ML_framework_evaluation.core.harness import EvaluationHarness, run_evaluation
from app.ML_framework_evaluation.core.errors import (
    ColumnNotFound,
    DeadlineExceeded,
    InvalidArgument,
    InvalidHyperparameter,
    UnsupportedOutput,
)
from app.ML_framework_evaluation.schemas import HarnessConfig, HarnessState

FULL_PIPELINE = [
    {"kind": "impute_median"},
    {"kind": "impute_mode"},
    {"kind": "one_hot_encode"},
    {"kind": "normalize"},
]


def _regression_config(**overrides):
    cfg = dict(
        target_column="y",
        train_fraction=0.75,
        seed=314,
        pipeline_spec=[{"kind": "power_transform"}, {"kind": "normalize"}],
        model_kind="linear_regression",
        metrics=["rmse", "rsq", "mae"],
    )
    cfg.update(overrides)
    return HarnessConfig(**cfg)


def _classification_config(**overrides):
    cfg = dict(
        target_column="target",
        train_fraction=0.75,
        seed=1,
        stratify_column="target",
        pipeline_spec=FULL_PIPELINE,
        model_kind="logistic_regression",
        metrics=["accuracy", "precision", "recall", "specificity", "f1", "roc_auc"],
        positive_class="yes",
    )
    cfg.update(overrides)
    return HarnessConfig(**cfg)


def test_regression_run(regression_df):
    harness = EvaluationHarness(_regression_config())
    result = harness.run(regression_df)

    assert harness.state == HarnessState.scored
    assert result.state_history == ["initialized", "split", "preprocessed", "fitted", "predicted", "scored"]
    assert result.metrics["rmse"] > 0
    assert 0.0 <= result.metrics["rsq"] <= 1.0
    assert result.metrics["rsq"] > 0.5
    assert len(result.predictions) == 50
    assert list(result.predictions.columns) == ["row", "truth", "prediction"]
    assert result.confusion_matrix is None


def test_target_never_reaches_the_pipeline_or_features(regression_df):
    result = run_evaluation(regression_df, _regression_config())

    assert "y" not in result.pipeline.input_columns
    assert "y" not in result.model.feature_columns
    assert result.model.feature_columns == ("x1", "x2", "x3")


def test_stratified_classification_run(classification_df):
    harness = EvaluationHarness(_classification_config())
    result = harness.run(classification_df)

    target = classification_df["target"]
    p_train = (target.iloc[result.train_indices] == "yes").mean()
    p_test = (target.iloc[result.test_indices] == "yes").mean()
    assert abs(p_train - p_test) < 0.05

    for name, value in result.metrics.items():
        assert 0.0 <= value <= 1.0, name
    assert result.model.classes == ("no", "yes")
    assert list(result.predictions.columns) == ["row", "truth", "prediction", "prob_no", "prob_yes"]
    assert np.asarray(result.confusion_matrix).sum() == len(result.test_indices)


def test_train_and_test_indices_partition_dataset(classification_df):
    result = run_evaluation(classification_df, _classification_config())
    combined = np.concatenate([result.train_indices, result.test_indices])
    assert sorted(combined) == list(range(len(classification_df)))


def test_grid_search_selects_a_grid_value(classification_df):
    config = _classification_config(
        model_kind="knn",
        mode="classification",
        metrics=["accuracy"],
        positive_class=None,
        hyperparameter_grid={"neighbors": [5, 10, 50]},
        cv_folds=5,
    )
    harness = EvaluationHarness(config)
    result = harness.run(classification_df)

    assert "tuned" in result.state_history
    assert result.hyperparameters["neighbors"] in (5, 10, 50)
    assert result.model.hyperparameters["neighbors"] == result.tuning.best_hyperparameters["neighbors"]
    assert len(result.tuning.fold_scores) == 15
    assert harness.session.folds is not None
    # tuning folds come from the training partition only
    for train_idx, val_idx in harness.session.folds:
        assert max(train_idx.max(), val_idx.max()) < len(result.train_indices)


def test_fixed_hyperparameters_merge_with_grid(regression_df):
    config = _regression_config(
        model_kind="svm_rbf",
        mode="regression",
        hyperparameters={"cost": 2.0},
        hyperparameter_grid={"rbf_sigma": [0.05, 0.5]},
        cv_folds=3,
    )
    result = run_evaluation(regression_df, config)
    assert result.hyperparameters["cost"] == 2.0
    assert result.hyperparameters["rbf_sigma"] in (0.05, 0.5)


def test_multiclass_run(multiclass_df):
    config = HarnessConfig(
        target_column="species",
        stratify_column="species",
        pipeline_spec=[{"kind": "normalize"}],
        model_kind="svm_rbf",
        mode="classification",
        metrics=["accuracy", "f1", "specificity", "roc_auc"],
        seed=5,
    )
    result = run_evaluation(multiclass_df, config)

    assert result.metrics["accuracy"] > 0.7
    assert len(result.confusion_matrix) == 3
    assert result.to_report().class_labels == ["setosa", "versicolor", "virginica"]


def test_runs_are_reproducible(classification_df):
    a = run_evaluation(classification_df, _classification_config())
    b = run_evaluation(classification_df, _classification_config())

    assert a.metrics == b.metrics
    pd.testing.assert_frame_equal(a.predictions, b.predictions)


def test_metric_for_wrong_mode_fails_in_initialized(regression_df):
    harness = EvaluationHarness(_regression_config(metrics=["roc_auc"]))
    with pytest.raises(UnsupportedOutput) as exc:
        harness.run(regression_df)

    assert harness.state == HarnessState.failed
    assert harness.failed_in == HarnessState.initialized
    assert exc.value.state == "initialized"
    assert harness.history == ["initialized", "failed"]


def test_pipeline_error_records_failing_state(regression_df):
    config = _regression_config(pipeline_spec=[{"kind": "normalize", "columns": ["height"]}])
    harness = EvaluationHarness(config)
    with pytest.raises(ColumnNotFound) as exc:
        harness.run(regression_df)

    assert harness.failed_in == HarnessState.split
    assert exc.value.state == "split"
    assert harness.error is exc.value


def test_bad_hyperparameter_surfaces_at_fit(classification_df):
    config = _classification_config(model_kind="knn", mode="classification", hyperparameters={"neighbors": 500})
    harness = EvaluationHarness(config)
    with pytest.raises(InvalidHyperparameter):
        harness.run(classification_df)
    assert harness.failed_in == HarnessState.preprocessed


def test_grid_requires_cv_folds(regression_df):
    config = _regression_config(model_kind="knn", mode="regression", hyperparameter_grid={"neighbors": [3, 5]})
    with pytest.raises(InvalidArgument) as exc:
        run_evaluation(regression_df, config)
    assert exc.value.context["field"] == "cv_folds"


def test_binary_metrics_need_positive_class(classification_df):
    with pytest.raises(InvalidArgument):
        run_evaluation(classification_df, _classification_config(positive_class=None))


def test_positive_class_must_exist(classification_df):
    with pytest.raises(InvalidArgument):
        run_evaluation(classification_df, _classification_config(positive_class="maybe"))


def test_missing_target_column(regression_df):
    with pytest.raises(ColumnNotFound):
        run_evaluation(regression_df, _regression_config(target_column="price"))


def test_missing_target_values_are_rejected(regression_df):
    df = regression_df.copy()
    df.loc[4, "y"] = np.nan
    with pytest.raises(InvalidArgument):
        run_evaluation(df, _regression_config())


def test_harness_runs_only_once(regression_df):
    harness = EvaluationHarness(_regression_config())
    harness.run(regression_df)
    with pytest.raises(InvalidArgument):
        harness.run(regression_df)
    assert harness.state == HarnessState.scored


def test_deadline_is_checked_between_transitions(regression_df):
    harness = EvaluationHarness(_regression_config(timeout_seconds=0))
    with pytest.raises(DeadlineExceeded) as exc:
        harness.run(regression_df)

    assert harness.failed_in == HarnessState.initialized
    assert exc.value.context["next_state"] == "split"


def test_report_serializes_result(classification_df):
    report = run_evaluation(classification_df, _classification_config()).to_report(model_file="m.pkl")

    assert report.model_kind == "logistic_regression"
    assert report.mode == "classification"
    assert report.model_file == "m.pkl"
    assert report.train_size + report.test_size == len(classification_df)
    assert set(report.predictions[0]) == {"row", "truth", "prediction", "prob_no", "prob_yes"}
    assert report.class_labels == ["no", "yes"]


def test_split_summary_is_reported(classification_df):
    result = run_evaluation(classification_df, _classification_config())
    summary = result.split_summary

    assert summary["method"] == "stratified_train_test"
    assert summary["train_size"] == len(result.train_indices)
    assert summary["test_size"] == len(result.test_indices)
    assert sum(summary["test_distribution"].values()) == len(result.test_indices)
    assert set(summary["train_distribution"]) == {"no", "yes"}

    report = result.to_report()
    assert report.split_summary == summary


def test_unstratified_split_summary(regression_df):
    summary = run_evaluation(regression_df, _regression_config()).split_summary
    assert summary["method"] == "train_test"
    assert "train_distribution" not in summary
