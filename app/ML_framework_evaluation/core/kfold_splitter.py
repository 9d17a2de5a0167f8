# app/ML_framework_evaluation/core/kfold_splitter.py
from sklearn.model_selection import KFold, StratifiedKFold
from typing import List, Optional, Tuple
import pandas as pd
import numpy as np
from .train_test_splitter import make_strata
from .errors import InsufficientData, InvalidArgument

Fold = Tuple[np.ndarray, np.ndarray]


def make_folds(
    dataset: pd.DataFrame,
    n_folds: int,
    stratify_column: Optional[str] = None,
    seed: int = 42,
) -> List[Fold]:
    """
    Returns (train_idx, val_idx) pairs of positional indices into `dataset`.
    Stratified when a stratify column is given; always shuffled with `seed`.
    """
    if isinstance(n_folds, bool) or not isinstance(n_folds, (int, np.integer)) or n_folds < 2:
        raise InvalidArgument(
            f"cv_folds must be an integer >= 2, got {n_folds}",
            field="cv_folds",
            value=n_folds,
        )
    n_rows = len(dataset)
    if n_folds > n_rows:
        raise InsufficientData(
            f"Cannot build {n_folds} folds from {n_rows} rows",
            rows=n_rows,
            cv_folds=n_folds,
        )

    positions = np.arange(n_rows)
    if stratify_column is not None:
        strata = make_strata(dataset, stratify_column)
        labels, counts = np.unique(strata, return_counts=True)
        too_small = {str(l): int(c) for l, c in zip(labels, counts) if c < n_folds}
        if too_small:
            raise InsufficientData(
                f"Strata of '{stratify_column}' with fewer than {n_folds} records: {too_small}",
                column=stratify_column,
                strata=too_small,
            )
        skf = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=seed)
        splits = skf.split(positions, strata)
    else:
        kf = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
        splits = kf.split(positions)

    return [(np.sort(train_idx), np.sort(val_idx)) for train_idx, val_idx in splits]


def get_fold_plan(
    dataset: pd.DataFrame,
    folds: List[Fold],
    stratify_column: Optional[str] = None,
) -> dict:
    """Returns detailed fold distribution (stratum balance per fold)"""
    strata = pd.Series(make_strata(dataset, stratify_column)) if stratify_column else None
    folds_detail = []

    for fold_idx, (train_idx, val_idx) in enumerate(folds):
        detail = {
            "fold": fold_idx + 1,
            "train_samples": int(len(train_idx)),
            "val_samples": int(len(val_idx)),
        }
        if strata is not None:
            detail["train_distribution"] = {str(k): int(v) for k, v in strata.iloc[train_idx].value_counts().items()}
            detail["val_distribution"] = {str(k): int(v) for k, v in strata.iloc[val_idx].value_counts().items()}
        folds_detail.append(detail)

    return {
        "cv_strategy": "stratified_kfold" if strata is not None else "kfold",
        "n_splits": len(folds),
        "folds": folds_detail,
    }
