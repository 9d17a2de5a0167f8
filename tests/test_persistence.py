import os

import pandas as pd
import pytest

from app.ML_framework_evaluation.core.harness import run_evaluation
from app.ML_framework_evaluation.core.model_adapter import predict
from app.ML_framework_evaluation.core.persistence import (
    load_bundle,
    load_bundle_from_file,
    save_bundle,
    save_bundle_to_dir,
)
from app.ML_framework_evaluation.core.errors import InvalidArgument
from app.ML_framework_evaluation.schemas import HarnessConfig


@pytest.fixture
def fitted(classification_df):
    config = HarnessConfig(
        target_column="target",
        stratify_column="target",
        pipeline_spec=[
            {"kind": "impute_median"},
            {"kind": "impute_mode"},
            {"kind": "one_hot_encode"},
            {"kind": "normalize"},
        ],
        model_kind="svm_rbf",
        mode="classification",
        metrics=["accuracy"],
        seed=3,
    )
    result = run_evaluation(classification_df, config)
    test_frame = classification_df.iloc[result.test_indices].drop(columns=["target"])
    return result, test_frame


def test_restored_bundle_predicts_identically(fitted):
    result, test_frame = fitted
    model, pipeline = load_bundle(save_bundle(result.model, result.pipeline))

    features = pipeline.apply(test_frame)
    assert predict(model, features, "class_label").tolist() == result.predictions["prediction"].tolist()
    restored_proba = predict(model, features, "class_probability")
    pd.testing.assert_series_equal(
        restored_proba["prob_yes"].reset_index(drop=True),
        result.predictions["prob_yes"],
        check_names=False,
    )


def test_restored_bundle_keeps_metadata(fitted):
    result, _ = fitted
    model, pipeline = load_bundle(save_bundle(result.model, result.pipeline))

    assert model.kind == "svm_rbf"
    assert model.hyperparameters == result.model.hyperparameters
    assert model.classes == result.model.classes
    assert pipeline.output_columns == result.pipeline.output_columns
    assert pipeline.summary() == result.pipeline.summary()


def test_save_to_directory(fitted, tmp_path):
    result, test_frame = fitted
    path = save_bundle_to_dir(result.model, result.pipeline, tmp_path / "bundles")

    assert os.path.basename(path).startswith("model_svm_rbf_")
    assert path.endswith(".pkl")
    model, pipeline = load_bundle_from_file(path)
    assert predict(model, pipeline.apply(test_frame), "class_label").tolist() == result.predictions["prediction"].tolist()


@pytest.mark.parametrize("blob", [b"", b"not a bundle"])
def test_garbage_is_rejected(blob):
    with pytest.raises(InvalidArgument):
        load_bundle(blob)
