# app/ML_framework_evaluation/core/data_analyzer.py
import pandas as pd
import numpy as np
from typing import List
from datetime import datetime, timezone
from .errors import ColumnNotFound
from ..schemas import FeatureInfo, TargetAnalysis, DataUnderstandingReport

NUMERIC = "numeric"
CATEGORICAL = "categorical"


def infer_column_kind(col: pd.Series) -> str:
    if pd.api.types.is_bool_dtype(col):
        return CATEGORICAL
    if pd.api.types.is_numeric_dtype(col):
        return NUMERIC
    return CATEGORICAL


def is_numeric_column(col: pd.Series) -> bool:
    return infer_column_kind(col) == NUMERIC


def mixed_type_columns(df: pd.DataFrame) -> List[str]:
    """Object columns whose present values mix numbers and strings."""
    mixed = []
    for name in df.columns:
        col = df[name]
        if col.dtype != object:
            continue
        present = col.dropna()
        if present.empty:
            continue
        is_number = present.map(lambda v: isinstance(v, (int, float, np.number)) and not isinstance(v, bool))
        if is_number.any() and not is_number.all():
            mixed.append(name)
    return mixed


def analyze_dataset(df: pd.DataFrame, target_column: str) -> DataUnderstandingReport:
    if target_column not in df.columns:
        raise ColumnNotFound(f"Target column '{target_column}' not found", column=target_column)

    n_rows = max(len(df), 1)
    features: List[FeatureInfo] = []
    quality_flags = []

    for col_name in df.columns:
        if col_name == target_column:
            continue
        col = df[col_name]
        missing_count = int(col.isna().sum())
        unique_count = int(col.nunique())

        info = FeatureInfo(
            name=str(col_name),
            inferred_type=infer_column_kind(col),
            dtype=str(col.dtype),
            missing_count=missing_count,
            missing_pct=round(missing_count / n_rows * 100, 2),
            unique_count=unique_count,
            cardinality_pct=round(unique_count / n_rows * 100, 2),
            sample_values=[_plain(v) for v in col.dropna().head(5).tolist()],
        )
        features.append(info)

        if info.missing_pct > 30:
            quality_flags.append(f"High missing values in '{col_name}' ({info.missing_pct}%)")
        if info.inferred_type == CATEGORICAL and unique_count > 50:
            quality_flags.append(f"High cardinality categorical: '{col_name}' ({unique_count} unique)")
        if unique_count <= 1:
            quality_flags.append(f"Constant feature: '{col_name}'")

    # Target Analysis
    y = df[target_column]
    kind = infer_column_kind(y)
    target = TargetAnalysis(name=str(target_column), inferred_type=kind)

    if kind == CATEGORICAL:
        class_counts = y.value_counts()
        distribution = {str(k): int(v) for k, v in class_counts.to_dict().items()}
        target.classes = list(distribution.keys())
        target.distribution = distribution
        target.n_classes = len(distribution)
        if target.n_classes >= 2:
            counts = list(distribution.values())
            target.imbalance_ratio = round(max(counts) / min(counts), 2)
            if target.imbalance_ratio > 3.0:
                target.is_imbalanced = True
                quality_flags.append(f"Class imbalance detected (ratio: {target.imbalance_ratio:.1f}:1)")
    else:
        described = y.describe()
        target.summary = {
            k: round(float(described[k]), 4)
            for k in ("mean", "std", "min", "25%", "50%", "75%", "max")
            if k in described and pd.notna(described[k])
        }
        skew = y.skew()
        if pd.notna(skew) and abs(skew) > 1:
            quality_flags.append(f"Skewed numeric target (skew: {skew:.2f}); consider a power transform")

    return DataUnderstandingReport(
        total_rows=len(df),
        total_columns=len(df.columns),
        features=features,
        target=target,
        quality_flags=quality_flags,
        generated_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%SZ"),
    )


def _plain(value):
    if isinstance(value, np.generic):
        return value.item()
    return value
