# app/ML_framework_evaluation/core/harness.py
"""
Evaluation harness: split -> preprocess -> [tune] -> fit -> predict -> score.

Every run moves through HarnessState in order. Any error moves the harness to
`failed`, records the state it happened in and is re-raised unchanged; a
failed harness is not resumable, build a new one with corrected inputs.
"""
import json
import math
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from .data_validator import ensure_valid
from .errors import DeadlineExceeded, HarnessError, InvalidArgument
from .evaluator import build_confusion_matrix, compute_metrics, validate_metrics
from .kfold_splitter import make_folds
from .logger import get_logger
from .model_adapter import (
    FittedModel,
    fit_model,
    match_label,
    predict,
    resolve_hyperparameters,
    resolve_mode,
)
from .model_zoo import CLASSIFICATION
from .preprocessor import FittedPipeline, fit_pipeline
from .session import HarnessSession
from .train_test_splitter import describe_split, split
from .tuner import TuningResult, tune
from ..schemas import EvaluationReport, HarnessConfig, HarnessState, OutputKind

logger = get_logger("harness")


@dataclass
class EvaluationResult:
    metrics: Dict[str, float]
    predictions: pd.DataFrame
    hyperparameters: Dict[str, Any]
    model: FittedModel
    pipeline: FittedPipeline
    train_indices: np.ndarray
    test_indices: np.ndarray
    state_history: List[str]
    confusion_matrix: Optional[List[List[int]]] = None
    tuning: Optional[TuningResult] = None
    split_summary: Optional[Dict[str, Any]] = None

    def to_report(self, model_file: Optional[str] = None) -> EvaluationReport:
        return EvaluationReport(
            model_kind=self.model.kind,
            mode=self.model.mode,
            hyperparameters=self.hyperparameters,
            metrics={k: (None if math.isnan(v) else round(v, 6)) for k, v in self.metrics.items()},
            predictions=json.loads(self.predictions.to_json(orient="records")),
            confusion_matrix=self.confusion_matrix,
            class_labels=[str(c) for c in self.model.classes] or None,
            tuning=self.tuning.to_summary() if self.tuning is not None else None,
            split_summary=self.split_summary,
            train_size=len(self.train_indices),
            test_size=len(self.test_indices),
            state_history=list(self.state_history),
            model_file=model_file,
            timestamp=datetime.now().isoformat(),
            message=f"Evaluation complete: {self.model.kind} ({self.model.mode})",
        )


class EvaluationHarness:
    def __init__(self, config: HarnessConfig):
        self.config = config
        self.session = HarnessSession()
        self.state = HarnessState.initialized
        self.history: List[str] = [HarnessState.initialized.value]
        self.failed_in: Optional[HarnessState] = None
        self.error: Optional[BaseException] = None
        self._deadline: Optional[float] = None

    # =============================================
    # Public entry point
    # =============================================
    def run(self, dataset: pd.DataFrame) -> EvaluationResult:
        if self.state != HarnessState.initialized:
            raise InvalidArgument(
                f"Harness already ran (state '{self.state.value}'); create a new one",
                state=self.state.value,
            )
        if self.config.timeout_seconds is not None:
            self._deadline = time.monotonic() + self.config.timeout_seconds

        try:
            self._initialize(dataset)
            self._advance(HarnessState.split, self._split)
            self._advance(HarnessState.preprocessed, self._preprocess)
            if self.config.hyperparameter_grid is not None:
                self._advance(HarnessState.tuned, self._tune)
            self._advance(HarnessState.fitted, self._fit)
            self._advance(HarnessState.predicted, self._predict)
            self._advance(HarnessState.scored, self._score)
        except Exception as e:
            self._fail(e)
            raise

        return self._result()

    # =============================================
    # State machine plumbing
    # =============================================
    def _advance(self, target: HarnessState, work: Callable[[], None]) -> None:
        self._check_deadline(target)
        started = time.monotonic()
        work()
        self.state = target
        self.history.append(target.value)
        logger.info(f"-> {target.value} ({time.monotonic() - started:.2f}s)")

    def _check_deadline(self, target: HarnessState) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise DeadlineExceeded(
                f"Deadline of {self.config.timeout_seconds}s passed before '{target.value}'",
                timeout_seconds=self.config.timeout_seconds,
                next_state=target.value,
            )

    def _fail(self, error: BaseException) -> None:
        self.failed_in = self.state
        self.error = error
        if isinstance(error, HarnessError):
            error.state = self.state.value
        self.state = HarnessState.failed
        self.history.append(HarnessState.failed.value)
        logger.error(f"Failed in state '{self.failed_in.value}': {type(error).__name__}: {error}")

    # =============================================
    # Transitions
    # =============================================
    def _initialize(self, dataset: pd.DataFrame) -> None:
        """Validates dataset and configuration before any work is done."""
        cfg = self.config
        ensure_valid(dataset, cfg)

        mode = resolve_mode(cfg.model_kind, cfg.mode)
        resolve_hyperparameters(cfg.model_kind, cfg.hyperparameters)

        n_classes = None
        if mode == CLASSIFICATION:
            labels = dataset[cfg.target_column].unique().tolist()
            n_classes = len(labels)
            if cfg.positive_class is not None and match_label(cfg.positive_class, labels) is None:
                raise InvalidArgument(
                    f"positive_class {cfg.positive_class!r} is not a value of '{cfg.target_column}'",
                    field="positive_class",
                    value=cfg.positive_class,
                )
        validate_metrics(cfg.metrics, mode, n_classes, cfg.positive_class)

        if cfg.hyperparameter_grid is not None:
            if cfg.cv_folds is None:
                raise InvalidArgument(
                    "hyperparameter_grid needs cv_folds", field="cv_folds"
                )
            if cfg.tuning_metric is not None:
                validate_metrics([cfg.tuning_metric], mode, n_classes, cfg.positive_class)
        if cfg.n_jobs == 0:
            raise InvalidArgument("n_jobs must be non-zero", field="n_jobs", value=cfg.n_jobs)

        self.session.dataset = dataset
        self.session.mode = mode
        self.session.hyperparameters = dict(cfg.hyperparameters)
        logger.info(
            f"Initialized {cfg.model_kind} ({mode}) on {len(dataset)} rows, target '{cfg.target_column}'"
        )

    def _split(self) -> None:
        cfg, s = self.config, self.session
        s.train_idx, s.test_idx = split(s.dataset, cfg.train_fraction, cfg.stratify_column, cfg.seed)
        s.train_frame = s.dataset.iloc[s.train_idx]
        s.test_frame = s.dataset.iloc[s.test_idx]
        s.split_summary = describe_split(s.dataset, s.train_idx, s.test_idx, cfg.stratify_column)
        logger.info(f"Split: {len(s.train_idx)} train / {len(s.test_idx)} test")

    def _preprocess(self) -> None:
        cfg, s = self.config, self.session
        target = cfg.target_column
        train_predictors = s.train_frame.drop(columns=[target])
        s.pipeline = fit_pipeline(cfg.pipeline_spec, train_predictors)
        s.X_train = s.pipeline.apply(train_predictors)
        s.X_test = s.pipeline.apply(s.test_frame.drop(columns=[target]))

    def _tune(self) -> None:
        cfg, s = self.config, self.session
        s.folds = make_folds(s.train_frame, cfg.cv_folds, cfg.stratify_column, cfg.seed)
        s.tuning = tune(s.train_frame, cfg, s.folds, s.mode)
        s.hyperparameters = {**cfg.hyperparameters, **s.tuning.best_hyperparameters}

    def _fit(self) -> None:
        cfg, s = self.config, self.session
        train = s.X_train.copy()
        train[cfg.target_column] = s.train_frame[cfg.target_column].to_numpy()
        s.model = fit_model(
            cfg.model_kind,
            s.hyperparameters,
            train,
            cfg.target_column,
            mode=s.mode,
            positive_class=cfg.positive_class,
            seed=cfg.seed,
        )

    def _predict(self) -> None:
        s = self.session
        if s.model.is_classifier:
            s.y_pred = predict(s.model, s.X_test, OutputKind.class_label)
            s.y_prob = predict(s.model, s.X_test, OutputKind.class_probability)
        else:
            s.y_pred = predict(s.model, s.X_test, OutputKind.numeric_value)
            s.y_prob = None

    def _score(self) -> None:
        cfg, s = self.config, self.session
        y_true = s.test_frame[cfg.target_column]
        s.metrics = compute_metrics(
            cfg.metrics,
            y_true,
            s.mode,
            predictions=s.y_pred,
            probabilities=s.y_prob,
            classes=s.model.classes,
            positive_class=s.model.positive_class,
        )
        if s.model.is_classifier:
            s.confusion_matrix = build_confusion_matrix(y_true, s.y_pred, s.model.classes)
        logger.info(f"Scores: {s.metrics}")

    # =============================================
    # Output
    # =============================================
    def _result(self) -> EvaluationResult:
        cfg, s = self.config, self.session
        predictions = pd.DataFrame({
            "row": s.test_frame.index,
            "truth": s.test_frame[cfg.target_column].to_numpy(),
            "prediction": s.y_pred.to_numpy(),
        })
        if s.y_prob is not None:
            for col in s.y_prob.columns:
                predictions[col] = s.y_prob[col].to_numpy()

        return EvaluationResult(
            metrics=dict(s.metrics),
            predictions=predictions,
            hyperparameters=dict(s.model.hyperparameters),
            model=s.model,
            pipeline=s.pipeline,
            train_indices=s.train_idx,
            test_indices=s.test_idx,
            state_history=list(self.history),
            confusion_matrix=s.confusion_matrix,
            tuning=s.tuning,
            split_summary=s.split_summary,
        )


def run_evaluation(dataset: pd.DataFrame, config: HarnessConfig) -> EvaluationResult:
    return EvaluationHarness(config).run(dataset)
