# app/ML_framework_evaluation/core/model_adapter.py
"""
Uniform fit/predict contract over the model zoo. The adapter validates
hyperparameters and shapes inputs/outputs; scikit-learn does the numerics.
"""
import warnings
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning

from .data_analyzer import is_numeric_column
from .errors import (
    ColumnNotFound,
    FitFailure,
    InvalidArgument,
    InvalidHyperparameter,
    SchemaMismatch,
    UnsupportedOutput,
)
from .logger import get_logger
from .model_zoo import CLASSIFICATION, MODEL_ZOO, REGRESSION
from ..schemas import OutputKind

logger = get_logger("model_adapter")


@dataclass(frozen=True)
class FittedModel:
    kind: str
    mode: str
    hyperparameters: Dict[str, Any]
    feature_columns: Tuple[str, ...]
    target_column: str
    classes: Tuple[Any, ...]
    positive_class: Any
    estimator: Any

    @property
    def is_classifier(self) -> bool:
        return self.mode == CLASSIFICATION


def get_zoo_entry(model_kind: str) -> Dict[str, Any]:
    kind = getattr(model_kind, "value", model_kind)
    entry = MODEL_ZOO.get(kind)
    if entry is None:
        raise InvalidArgument(
            f"Unknown model_kind '{kind}'. Known: {sorted(MODEL_ZOO)}",
            field="model_kind",
            value=kind,
        )
    return entry


def resolve_mode(model_kind: str, mode: Optional[str]) -> str:
    kind = getattr(model_kind, "value", model_kind)
    modes = get_zoo_entry(kind)["modes"]
    mode = getattr(mode, "value", mode)
    if mode is None:
        if len(modes) == 1:
            return modes[0]
        raise InvalidArgument(
            f"model_kind '{kind}' needs an explicit mode: one of {list(modes)}",
            field="mode",
            model_kind=kind,
        )
    if mode not in modes:
        raise InvalidArgument(
            f"model_kind '{kind}' does not support mode '{mode}' (supported: {list(modes)})",
            field="mode",
            value=mode,
            model_kind=kind,
        )
    return mode


def resolve_hyperparameters(model_kind: str, hyperparameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    kind = getattr(model_kind, "value", model_kind)
    defaults = get_zoo_entry(kind)["defaults"]
    given = dict(hyperparameters or {})
    unknown = sorted(set(given) - set(defaults))
    if unknown:
        raise InvalidHyperparameter(
            f"{kind}: unknown hyperparameters {unknown}; accepted: {sorted(defaults)}",
            model_kind=kind,
            parameter=unknown,
        )
    return {**defaults, **given}


def fit_model(
    model_kind: str,
    hyperparameters: Optional[Dict[str, Any]],
    train_dataset: pd.DataFrame,
    target_column: str,
    mode: Optional[str] = None,
    positive_class: Any = None,
    seed: int = 0,
) -> FittedModel:
    kind = getattr(model_kind, "value", model_kind)
    entry = get_zoo_entry(kind)
    mode = resolve_mode(kind, mode)
    params = resolve_hyperparameters(kind, hyperparameters)

    if target_column not in train_dataset.columns:
        raise ColumnNotFound(f"Target column '{target_column}' not found", column=target_column)

    feature_columns = [c for c in train_dataset.columns if c != target_column]
    X = _feature_matrix(train_dataset, feature_columns, fitting=True)
    y = train_dataset[target_column]
    if y.isna().any():
        raise FitFailure(f"Target column '{target_column}' has missing values", column=target_column)

    if mode == REGRESSION:
        if not is_numeric_column(y):
            raise InvalidArgument(
                f"Regression target '{target_column}' must be numeric, got {y.dtype}",
                column=target_column,
            )
        if not np.isfinite(y.std(ddof=0)) or y.std(ddof=0) == 0:
            raise FitFailure(f"Regression target '{target_column}' has zero variance", column=target_column)
    elif y.nunique() < 2:
        raise FitFailure(
            f"Classification target '{target_column}' has a single class",
            column=target_column,
            classes=y.unique().tolist(),
        )

    estimator = entry["build"](params, mode, len(train_dataset), seed)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        try:
            estimator.fit(X, y.to_numpy())
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
            raise FitFailure(f"{entry['name']} failed to fit: {e}", model_kind=kind) from e
    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            logger.warning(f"{entry['name']}: {w.message}")
        else:
            logger.debug(f"{entry['name']}: {w.category.__name__}: {w.message}")

    classes: Tuple[Any, ...] = ()
    resolved_positive = None
    if mode == CLASSIFICATION:
        classes = tuple(_plain(c) for c in estimator.classes_)
        if positive_class is not None:
            resolved_positive = match_label(positive_class, classes)
            if resolved_positive is None:
                raise InvalidArgument(
                    f"positive_class {positive_class!r} is not one of the training classes {list(classes)}",
                    field="positive_class",
                    value=positive_class,
                )

    return FittedModel(
        kind=kind,
        mode=mode,
        hyperparameters=params,
        feature_columns=tuple(feature_columns),
        target_column=target_column,
        classes=classes,
        positive_class=resolved_positive,
        estimator=estimator,
    )


def predict(
    model: FittedModel,
    dataset: pd.DataFrame,
    output_kind: Union[str, OutputKind],
) -> Union[pd.Series, pd.DataFrame]:
    try:
        output_kind = OutputKind(output_kind)
    except ValueError:
        raise UnsupportedOutput(
            f"Unknown output kind '{output_kind}'",
            output_kind=str(output_kind),
        ) from None

    if model.mode == REGRESSION and output_kind != OutputKind.numeric_value:
        raise UnsupportedOutput(
            f"{model.kind} (regression) cannot produce '{output_kind.value}'",
            model_kind=model.kind,
            output_kind=output_kind.value,
        )
    if model.mode == CLASSIFICATION and output_kind == OutputKind.numeric_value:
        raise UnsupportedOutput(
            f"{model.kind} (classification) cannot produce 'numeric_value'",
            model_kind=model.kind,
            output_kind=output_kind.value,
        )

    X = _feature_matrix(dataset, list(model.feature_columns), fitting=False)

    if output_kind == OutputKind.class_probability:
        if not hasattr(model.estimator, "predict_proba"):
            raise UnsupportedOutput(
                f"{model.kind} does not provide class probabilities",
                model_kind=model.kind,
                output_kind=output_kind.value,
            )
        proba = model.estimator.predict_proba(X)
        return pd.DataFrame(
            proba,
            columns=[probability_column(c) for c in model.classes],
            index=dataset.index,
        )

    values = model.estimator.predict(X)
    if output_kind == OutputKind.class_label:
        return pd.Series(values, index=dataset.index, name="pred_class")
    return pd.Series(values, index=dataset.index, name="pred_value", dtype=float)


def probability_column(label: Any) -> str:
    return f"prob_{label}"


def match_label(value: Any, labels) -> Any:
    """Exact match first, then string match (JSON configs carry labels as strings)."""
    for label in labels:
        if label == value and type(label) is type(value):
            return label
    for label in labels:
        if str(label) == str(value):
            return label
    return None


def _feature_matrix(dataset: pd.DataFrame, feature_columns, fitting: bool) -> np.ndarray:
    missing = [c for c in feature_columns if c not in dataset.columns]
    if missing:
        raise SchemaMismatch(
            f"Input is missing feature columns the model was fit on: {missing}",
            columns=missing,
        )
    if fitting and not feature_columns:
        raise InvalidArgument("No feature columns besides the target", field="features")

    non_numeric = [c for c in feature_columns if not is_numeric_column(dataset[c])]
    if non_numeric:
        raise InvalidArgument(
            f"Feature columns must be numeric (add one_hot_encode to the pipeline): {non_numeric}",
            columns=non_numeric,
        )
    X = dataset[feature_columns].to_numpy(dtype=float)
    if np.isnan(X).any():
        nan_cols = [c for c in feature_columns if dataset[c].isna().any()]
        err = FitFailure if fitting else InvalidArgument
        raise err(f"Feature columns contain missing values (add an impute step): {nan_cols}", columns=nan_cols)
    return X


def _plain(value):
    if isinstance(value, np.generic):
        return value.item()
    return value
