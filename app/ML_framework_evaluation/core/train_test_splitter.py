# app/ML_framework_evaluation/core/train_test_splitter.py
from sklearn.model_selection import train_test_split
from typing import Optional, Tuple
import pandas as pd
import numpy as np
from .data_analyzer import is_numeric_column
from .errors import ColumnNotFound, InsufficientData, InvalidArgument

# Continuous stratification columns are cut into this many quantile bins
STRATA_BINS = 4
MISSING_STRATUM = "__missing__"


def make_strata(dataset: pd.DataFrame, stratify_column: str) -> np.ndarray:
    """
    Labels each row with its stratum. Categories for categorical columns,
    quartile bins for numeric columns with more than STRATA_BINS distinct values.
    """
    if stratify_column not in dataset.columns:
        raise ColumnNotFound(
            f"Stratify column '{stratify_column}' not found in dataset",
            column=stratify_column,
        )
    col = dataset[stratify_column]
    missing = col.isna().to_numpy()

    if is_numeric_column(col) and col.nunique() > STRATA_BINS:
        bins = pd.qcut(col, q=STRATA_BINS, labels=False, duplicates="drop")
        labels = bins.astype("Int64").astype(str).to_numpy(dtype=object)
    else:
        labels = col.astype(str).to_numpy(dtype=object)

    labels[missing] = MISSING_STRATUM
    return labels


def split(
    dataset: pd.DataFrame,
    train_fraction: float,
    stratify_column: Optional[str] = None,
    seed: int = 42,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Deterministic (stratified) train/test partition.
    Returns sorted positional row indices (train, test).
    """
    if not isinstance(train_fraction, (int, float)) or not 0 < train_fraction < 1:
        raise InvalidArgument(
            f"train_fraction must lie strictly between 0 and 1, got {train_fraction}",
            field="train_fraction",
            value=train_fraction,
        )

    n_rows = len(dataset)
    if n_rows < 2:
        raise InsufficientData(
            f"Need at least 2 rows to split, got {n_rows}", rows=n_rows
        )

    strata = None
    if stratify_column is not None:
        strata = make_strata(dataset, stratify_column)
        labels, counts = np.unique(strata, return_counts=True)
        too_small = {str(l): int(c) for l, c in zip(labels, counts) if c < 2}
        if too_small:
            raise InsufficientData(
                f"Strata of '{stratify_column}' with fewer than 2 records: {too_small}",
                column=stratify_column,
                strata=too_small,
            )

    positions = np.arange(n_rows)
    try:
        train_idx, test_idx = train_test_split(
            positions,
            train_size=train_fraction,
            random_state=seed,
            shuffle=True,
            stratify=strata,
        )
    except ValueError as e:
        raise InsufficientData(
            f"Cannot split {n_rows} rows with train_fraction={train_fraction}: {e}",
            rows=n_rows,
            train_fraction=train_fraction,
            column=stratify_column,
        ) from e

    return np.sort(train_idx), np.sort(test_idx)


def describe_split(
    dataset: pd.DataFrame,
    train_idx: np.ndarray,
    test_idx: np.ndarray,
    stratify_column: Optional[str] = None,
) -> dict:
    """Partition sizes plus per-stratum distribution of both partitions."""
    summary = {
        "method": "stratified_train_test" if stratify_column else "train_test",
        "train_size": int(len(train_idx)),
        "test_size": int(len(test_idx)),
        "train_fraction_actual": round(len(train_idx) / max(len(dataset), 1), 4),
    }
    if stratify_column is not None:
        strata = pd.Series(make_strata(dataset, stratify_column))
        summary["train_distribution"] = {str(k): int(v) for k, v in strata.iloc[train_idx].value_counts().items()}
        summary["test_distribution"] = {str(k): int(v) for k, v in strata.iloc[test_idx].value_counts().items()}
    return summary
