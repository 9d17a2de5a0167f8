# app/ML_framework_evaluation/schemas.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any, Optional, Union


class StepKind(str, Enum):
    impute_median = "impute_median"
    impute_mode = "impute_mode"
    power_transform = "power_transform"
    normalize = "normalize"
    one_hot_encode = "one_hot_encode"
    drop_columns = "drop_columns"


class ModelKind(str, Enum):
    linear_regression = "linear_regression"
    logistic_regression = "logistic_regression"
    knn = "knn"
    svm_rbf = "svm_rbf"


class ModelMode(str, Enum):
    classification = "classification"
    regression = "regression"


class OutputKind(str, Enum):
    class_label = "class_label"
    class_probability = "class_probability"
    numeric_value = "numeric_value"


class HarnessState(str, Enum):
    initialized = "initialized"
    split = "split"
    preprocessed = "preprocessed"
    tuned = "tuned"
    fitted = "fitted"
    predicted = "predicted"
    scored = "scored"
    failed = "failed"


class StepSpec(BaseModel):
    # kind stays a plain string: unknown kinds are reported by the pipeline itself
    kind: str
    columns: Optional[List[str]] = None


HyperparameterGrid = Union[Dict[str, List[Any]], List[Dict[str, Any]]]


class HarnessConfig(BaseModel):
    """Everything one evaluation run needs. No value is read from global state."""
    model_config = ConfigDict(protected_namespaces=())

    target_column: str
    train_fraction: float = 0.75
    seed: int = 42
    stratify_column: Optional[str] = None
    pipeline_spec: List[StepSpec] = Field(default_factory=list)
    model_kind: str
    mode: Optional[str] = Field(None, description="classification or regression; required for knn and svm_rbf")
    hyperparameters: Dict[str, Any] = Field(default_factory=dict)
    hyperparameter_grid: Optional[HyperparameterGrid] = None
    cv_folds: Optional[int] = None
    metrics: List[str] = Field(default_factory=list)
    tuning_metric: Optional[str] = None
    positive_class: Optional[Any] = None
    n_jobs: int = 1
    timeout_seconds: Optional[float] = None


class FeatureInfo(BaseModel):
    name: str
    inferred_type: str = Field(..., description="numeric or categorical")
    dtype: str
    missing_count: int
    missing_pct: float
    unique_count: int
    cardinality_pct: float = Field(..., description="unique / total rows")
    sample_values: List[Any] = Field(..., description="First 5 non-null values")


class TargetAnalysis(BaseModel):
    name: str
    inferred_type: str
    classes: List[str] = Field(default_factory=list)
    distribution: Dict[str, int] = Field(default_factory=dict)
    n_classes: int = 0
    imbalance_ratio: Optional[float] = None  # max/min
    is_imbalanced: bool = False
    summary: Dict[str, float] = Field(default_factory=dict)


class DataUnderstandingReport(BaseModel):
    total_rows: int
    total_columns: int
    features: List[FeatureInfo]
    target: TargetAnalysis
    quality_flags: List[str] = Field(default_factory=list)
    generated_at: str


class ValidationErrorDetail(BaseModel):
    check: str
    passed: bool
    message: str
    severity: str  # "error" or "warning"
    column: Optional[str] = None


class DataValidationReport(BaseModel):
    overall_passed: bool
    errors: List[ValidationErrorDetail] = Field(default_factory=list)
    warnings: List[ValidationErrorDetail] = Field(default_factory=list)
    summary: str


class CombinationScore(BaseModel):
    hyperparameters: Dict[str, Any]
    mean_score: Optional[float]
    std_score: Optional[float]
    fold_scores: List[Optional[float]]


class TuningSummary(BaseModel):
    metric: str
    maximize: bool
    n_folds: int
    best_hyperparameters: Dict[str, Any]
    best_score: float
    results: List[CombinationScore]


class EvaluationReport(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_kind: str
    mode: str
    hyperparameters: Dict[str, Any]
    metrics: Dict[str, Optional[float]]
    predictions: List[Dict[str, Any]]
    confusion_matrix: Optional[List[List[int]]] = None
    class_labels: Optional[List[str]] = None
    tuning: Optional[TuningSummary] = None
    split_summary: Optional[Dict[str, Any]] = None
    train_size: int
    test_size: int
    state_history: List[str]
    model_file: Optional[str] = None
    timestamp: str
    message: str
