# app/ML_framework_evaluation/core/preprocessor.py
"""
Preprocessing pipeline: an ordered list of step descriptors fit once on
training data into immutable parameters, then replayed on any dataset.
"""
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import OneHotEncoder, PowerTransformer

from .data_analyzer import is_numeric_column
from .errors import (
    ColumnNotFound,
    FitFailure,
    InvalidArgument,
    SchemaMismatch,
    UnknownStepKind,
)
from .logger import get_logger
from ..schemas import StepKind, StepSpec

logger = get_logger("preprocessor")

MISSING_CATEGORY = "missing"
UNSEEN_SUFFIX = "unseen"


class PreprocessingStep(ABC):
    """
    One fitted transform. `fit` reads only the training frame; `transform`
    is a pure function of the fitted parameters and its input.
    """

    kind: str = ""
    # default column selection when the descriptor names none
    selects_numeric: Optional[bool] = None

    def __init__(self, columns: Optional[List[str]] = None):
        self.requested_columns = list(columns) if columns is not None else None
        self.columns: List[str] = []
        self.fitted = False

    def fit(self, data: pd.DataFrame) -> "PreprocessingStep":
        self.columns = self._resolve_columns(data)
        if self.columns:
            self._fit(data)
        self.fitted = True
        return self

    def transform(self, data: pd.DataFrame) -> pd.DataFrame:
        if not self.fitted:
            raise InvalidArgument(f"Step '{self.kind}' used before fit", step=self.kind)
        missing = [c for c in self.columns if c not in data.columns]
        if missing:
            raise SchemaMismatch(
                f"Step '{self.kind}' expects columns absent from the input: {missing}",
                step=self.kind,
                columns=missing,
            )
        df = data.copy()
        if not self.columns:
            return df
        return self._transform(df)

    def params(self) -> Dict[str, Any]:
        return {"kind": self.kind, "columns": list(self.columns)}

    @abstractmethod
    def _fit(self, data: pd.DataFrame) -> None:
        pass

    @abstractmethod
    def _transform(self, df: pd.DataFrame) -> pd.DataFrame:
        pass

    def _resolve_columns(self, data: pd.DataFrame) -> List[str]:
        if self.requested_columns is None:
            if self.selects_numeric is None:
                raise InvalidArgument(f"Step '{self.kind}' requires explicit columns", step=self.kind)
            return [
                c for c in data.columns
                if is_numeric_column(data[c]) == self.selects_numeric
            ]

        missing = [c for c in self.requested_columns if c not in data.columns]
        if missing:
            raise ColumnNotFound(
                f"Step '{self.kind}' references columns not in the training data: {missing}",
                step=self.kind,
                columns=missing,
            )
        if self.selects_numeric:
            non_numeric = [c for c in self.requested_columns if not is_numeric_column(data[c])]
            if non_numeric:
                raise InvalidArgument(
                    f"Step '{self.kind}' needs numeric columns, got non-numeric: {non_numeric}",
                    step=self.kind,
                    columns=non_numeric,
                )
        return list(self.requested_columns)

    def _check_not_empty(self, data: pd.DataFrame) -> None:
        empty = [c for c in self.columns if data[c].notna().sum() == 0]
        if empty:
            raise FitFailure(
                f"Step '{self.kind}' cannot fit columns with no observed values: {empty}",
                step=self.kind,
                columns=empty,
            )


# =============================================
# Imputation
# =============================================
class ImputeMedianStep(PreprocessingStep):
    kind = StepKind.impute_median.value
    selects_numeric = True

    def _fit(self, data):
        self._check_not_empty(data)
        self.imputer = SimpleImputer(strategy="median")
        self.imputer.fit(data[self.columns].astype(float))

    def _transform(self, df):
        df[self.columns] = self.imputer.transform(df[self.columns].astype(float))
        return df

    def params(self):
        return {**super().params(), "medians": dict(zip(self.columns, self.imputer.statistics_.tolist()))}


class ImputeModeStep(PreprocessingStep):
    kind = StepKind.impute_mode.value
    selects_numeric = False

    def _fit(self, data):
        self._check_not_empty(data)
        self.numeric_columns = [c for c in self.columns if is_numeric_column(data[c])]
        self.imputer = SimpleImputer(strategy="most_frequent", missing_values=np.nan)
        self.imputer.fit(_as_object_frame(data[self.columns]))

    def _transform(self, df):
        filled = self.imputer.transform(_as_object_frame(df[self.columns]))
        filled = pd.DataFrame(filled, columns=self.columns, index=df.index)
        for col in self.columns:
            if col in self.numeric_columns:
                df[col] = pd.to_numeric(filled[col])
            else:
                df[col] = filled[col].astype(object)
        return df

    def params(self):
        return {**super().params(), "modes": dict(zip(self.columns, self.imputer.statistics_.tolist()))}


# =============================================
# Numeric transforms
# =============================================
class PowerTransformStep(PreprocessingStep):
    """Yeo-Johnson, one lambda per column; constant columns pass through unchanged."""

    kind = StepKind.power_transform.value
    selects_numeric = True

    def _fit(self, data):
        self._check_not_empty(data)
        values = data[self.columns].astype(float)
        self.constant_columns = [c for c in self.columns if values[c].nunique(dropna=True) <= 1]
        self.active_columns = [c for c in self.columns if c not in self.constant_columns]
        self.transformer = None
        if self.active_columns:
            self.transformer = PowerTransformer(method="yeo-johnson", standardize=False)
            try:
                self.transformer.fit(values[self.active_columns].to_numpy())
            except (ValueError, FloatingPointError) as e:
                raise FitFailure(
                    f"Yeo-Johnson estimation failed: {e}", step=self.kind, columns=self.active_columns
                ) from e

    def _transform(self, df):
        df[self.columns] = df[self.columns].astype(float)
        if self.transformer is not None:
            df[self.active_columns] = self.transformer.transform(df[self.active_columns].to_numpy())
        return df

    def params(self):
        lambdas = {}
        if self.transformer is not None:
            lambdas = dict(zip(self.active_columns, self.transformer.lambdas_.tolist()))
        return {**super().params(), "lambdas": lambdas, "constant_columns": list(self.constant_columns)}


class NormalizeStep(PreprocessingStep):
    """
    Center by the training mean, scale by the training standard deviation.
    Zero-variance columns are centered only and reported in `zero_variance_columns`.
    """

    kind = StepKind.normalize.value
    selects_numeric = True

    def _fit(self, data):
        self._check_not_empty(data)
        values = data[self.columns].astype(float)
        self.means = values.mean()
        stds = values.std(ddof=1)
        degenerate = ~np.isfinite(stds) | (stds <= np.finfo(float).eps)
        self.zero_variance_columns = stds.index[degenerate].tolist()
        self.scales = stds.where(~degenerate, 1.0)
        if self.zero_variance_columns:
            logger.warning(f"Zero-variance columns left unscaled: {self.zero_variance_columns}")

    def _transform(self, df):
        values = df[self.columns].astype(float)
        df[self.columns] = (values - self.means) / self.scales
        return df

    def params(self):
        return {
            **super().params(),
            "means": self.means.to_dict(),
            "scales": self.scales.to_dict(),
            "zero_variance_columns": list(self.zero_variance_columns),
        }


# =============================================
# Encoding / selection
# =============================================
class OneHotEncodeStep(PreprocessingStep):
    """
    One indicator column per training category plus a `<col>_unseen` bucket
    that catches every category first met at apply time.
    """

    kind = StepKind.one_hot_encode.value
    selects_numeric = False

    def _fit(self, data):
        self.encoder = OneHotEncoder(handle_unknown="ignore", sparse_output=False, dtype=float)
        self.encoder.fit(_as_labels(data[self.columns]))
        self.vocabulary = {
            col: [str(c) for c in cats]
            for col, cats in zip(self.columns, self.encoder.categories_)
        }
        # names already in the output: columns this step leaves alone, then earlier indicators
        taken = {c for c in data.columns if c not in self.columns}
        self.output_columns = {}
        for col, cats in self.vocabulary.items():
            names = [f"{col}_{cat}" for cat in cats]
            clashes = sorted(set(names) & taken)
            if clashes:
                raise InvalidArgument(
                    f"Step '{self.kind}' on '{col}' would produce columns that already exist: {clashes}",
                    step=self.kind,
                    column=col,
                    columns=clashes,
                )
            taken.update(names)
            unseen = f"{col}_{UNSEEN_SUFFIX}"
            while unseen in taken:
                unseen = f"_{unseen}"
            taken.add(unseen)
            self.output_columns[col] = (names, unseen)

    def _transform(self, df):
        with warnings.catch_warnings():
            # unknown categories are routed to the unseen bucket below
            warnings.filterwarnings("ignore", message="Found unknown categories", category=UserWarning)
            encoded = self.encoder.transform(_as_labels(df[self.columns]))

        blocks = []
        offset = 0
        for col in self.columns:
            names, unseen = self.output_columns[col]
            block = encoded[:, offset:offset + len(names)]
            offset += len(names)
            frame = pd.DataFrame(block, columns=names, index=df.index)
            frame[unseen] = 1.0 - block.sum(axis=1)
            blocks.append(frame)

        df = df.drop(columns=self.columns)
        return pd.concat([df] + blocks, axis=1)

    def params(self):
        return {**super().params(), "vocabulary": {c: list(v) for c, v in self.vocabulary.items()}}


class DropColumnsStep(PreprocessingStep):
    kind = StepKind.drop_columns.value
    selects_numeric = None

    def _resolve_columns(self, data):
        if not self.requested_columns:
            raise InvalidArgument("Step 'drop_columns' requires explicit columns", step=self.kind)
        return super()._resolve_columns(data)

    def _fit(self, data):
        pass

    def _transform(self, df):
        return df.drop(columns=self.columns)


STEP_REGISTRY = {
    cls.kind: cls
    for cls in (
        ImputeMedianStep,
        ImputeModeStep,
        PowerTransformStep,
        NormalizeStep,
        OneHotEncodeStep,
        DropColumnsStep,
    )
}


# =============================================
# Pipeline
# =============================================
@dataclass(frozen=True)
class FittedPipeline:
    steps: Tuple[PreprocessingStep, ...]
    input_columns: Tuple[str, ...]
    output_columns: Tuple[str, ...]

    def apply(self, dataset: pd.DataFrame) -> pd.DataFrame:
        df = dataset
        for step in self.steps:
            df = step.transform(df)
        if df is dataset:
            df = dataset.copy()
        return df

    def summary(self) -> List[Dict[str, Any]]:
        return [step.params() for step in self.steps]


StepLike = Union[StepSpec, Dict[str, Any]]


def build_step(descriptor: StepLike) -> PreprocessingStep:
    if isinstance(descriptor, dict):
        if "kind" not in descriptor:
            raise UnknownStepKind(f"Step descriptor without a kind: {descriptor}", descriptor=descriptor)
        descriptor = StepSpec(**descriptor)
    kind = descriptor.kind.value if isinstance(descriptor.kind, StepKind) else str(descriptor.kind)
    step_cls = STEP_REGISTRY.get(kind)
    if step_cls is None:
        raise UnknownStepKind(
            f"Unknown preprocessing step '{kind}'. Known: {sorted(STEP_REGISTRY)}",
            kind=kind,
        )
    return step_cls(descriptor.columns)


def fit_pipeline(pipeline_spec: Sequence[StepLike], train_dataset: pd.DataFrame) -> FittedPipeline:
    """Fits every step in order; each later step is fit on the output of the earlier ones."""
    steps = [build_step(d) for d in pipeline_spec]

    current = train_dataset
    fitted = []
    for step in steps:
        step.fit(current)
        current = step.transform(current)
        fitted.append(step)
        logger.debug(f"Fitted step '{step.kind}' on columns {step.columns}")

    return FittedPipeline(
        steps=tuple(fitted),
        input_columns=tuple(train_dataset.columns),
        output_columns=tuple(current.columns),
    )


def apply_pipeline(fitted_pipeline: FittedPipeline, dataset: pd.DataFrame) -> pd.DataFrame:
    return fitted_pipeline.apply(dataset)


def _as_object_frame(frame: pd.DataFrame) -> pd.DataFrame:
    obj = frame.astype(object)
    return obj.where(frame.notna(), np.nan)


def _as_labels(frame: pd.DataFrame) -> pd.DataFrame:
    labels = frame.astype(object).where(frame.notna(), MISSING_CATEGORY)
    return labels.astype(str)
