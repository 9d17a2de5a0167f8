# app/ML_framework_evaluation/core/data_validator.py
from typing import List
import pandas as pd

from .data_analyzer import mixed_type_columns
from .errors import ColumnNotFound, HarnessError, InsufficientData, InvalidArgument
from ..schemas import DataValidationReport, HarnessConfig, ValidationErrorDetail

# check name -> error raised by ensure_valid
CHECK_ERRORS = {
    "empty_dataset": InsufficientData,
    "missing_target_column": ColumnNotFound,
    "missing_stratify_column": ColumnNotFound,
    "target_missing_values": InvalidArgument,
    "mixed_types": InvalidArgument,
}


def validate_dataset(df: pd.DataFrame, config: HarnessConfig) -> DataValidationReport:
    errors: List[ValidationErrorDetail] = []
    warnings: List[ValidationErrorDetail] = []
    target = config.target_column

    # === 1. Empty dataset ===
    if df.empty or len(df) == 0:
        errors.append(ValidationErrorDetail(
            check="empty_dataset",
            passed=False,
            message="Dataset is empty",
            severity="error",
        ))

    # === 2. Target / stratify columns exist ===
    if target not in df.columns:
        errors.append(ValidationErrorDetail(
            check="missing_target_column",
            passed=False,
            message=f"Target column '{target}' not found in dataset",
            severity="error",
            column=target,
        ))
    elif df[target].isna().any():
        errors.append(ValidationErrorDetail(
            check="target_missing_values",
            passed=False,
            message=f"Target column '{target}' has {int(df[target].isna().sum())} missing value(s)",
            severity="error",
            column=target,
        ))

    stratify = config.stratify_column
    if stratify is not None and stratify not in df.columns:
        errors.append(ValidationErrorDetail(
            check="missing_stratify_column",
            passed=False,
            message=f"Stratify column '{stratify}' not found in dataset",
            severity="error",
            column=stratify,
        ))

    # === 3. One semantic type per column ===
    for col in mixed_type_columns(df):
        errors.append(ValidationErrorDetail(
            check="mixed_types",
            passed=False,
            message=f"Column '{col}' mixes numeric and string values",
            severity="error",
            column=str(col),
        ))

    # === 4. Constant features (warning) ===
    for col in df.columns:
        if col == target or len(df) == 0:
            continue
        if df[col].nunique(dropna=True) <= 1:
            warnings.append(ValidationErrorDetail(
                check="constant_feature",
                passed=True,
                message=f"Column '{col}' is constant",
                severity="warning",
                column=str(col),
            ))
        missing_pct = df[col].isna().mean()
        if missing_pct > 0.3:
            warnings.append(ValidationErrorDetail(
                check="high_missingness",
                passed=True,
                message=f"Column '{col}' is {missing_pct:.0%} missing",
                severity="warning",
                column=str(col),
            ))

    overall_passed = len(errors) == 0
    summary = "All checks passed!" if overall_passed else f"{len(errors)} critical error(s) found."

    return DataValidationReport(
        overall_passed=overall_passed,
        errors=errors,
        warnings=warnings,
        summary=summary,
    )


def ensure_valid(df: pd.DataFrame, config: HarnessConfig) -> DataValidationReport:
    """Raises the mapped error for the first failed check; returns the report otherwise."""
    report = validate_dataset(df, config)
    if report.errors:
        first = report.errors[0]
        error_cls = CHECK_ERRORS.get(first.check, HarnessError)
        raise error_cls(first.message, check=first.check, column=first.column)
    return report
