# app/ML_framework_evaluation/core/__init__.py

from .errors import (
    HarnessError,
    InvalidArgument,
    InsufficientData,
    ColumnNotFound,
    SchemaMismatch,
    UnknownStepKind,
    UnsupportedOutput,
    InvalidHyperparameter,
    FitFailure,
    DeadlineExceeded,
)
from .train_test_splitter import split, describe_split
from .kfold_splitter import make_folds, get_fold_plan
from .preprocessor import fit_pipeline, apply_pipeline, FittedPipeline
from .model_adapter import fit_model, predict, FittedModel
from .evaluator import compute_metrics, METRIC_CATALOG
from .tuner import tune, expand_grid
from .harness import EvaluationHarness, EvaluationResult, run_evaluation
from .persistence import save_bundle, load_bundle, save_bundle_to_dir
from .data_validator import validate_dataset, ensure_valid
from .data_analyzer import analyze_dataset, infer_column_kind

__all__ = [
    "HarnessError",
    "InvalidArgument",
    "InsufficientData",
    "ColumnNotFound",
    "SchemaMismatch",
    "UnknownStepKind",
    "UnsupportedOutput",
    "InvalidHyperparameter",
    "FitFailure",
    "DeadlineExceeded",
    "split",
    "describe_split",
    "make_folds",
    "get_fold_plan",
    "fit_pipeline",
    "apply_pipeline",
    "FittedPipeline",
    "fit_model",
    "predict",
    "FittedModel",
    "compute_metrics",
    "METRIC_CATALOG",
    "tune",
    "expand_grid",
    "EvaluationHarness",
    "EvaluationResult",
    "run_evaluation",
    "save_bundle",
    "load_bundle",
    "save_bundle_to_dir",
    "validate_dataset",
    "ensure_valid",
    "analyze_dataset",
    "infer_column_kind",
]
