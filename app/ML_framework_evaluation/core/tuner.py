# app/ML_framework_evaluation/core/tuner.py
# Grid search over cross-validation folds of the training partition

import math
from dataclasses import dataclass, field
from itertools import product
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .errors import InsufficientData, InvalidArgument
from .evaluator import compute_metrics, is_maximized
from .kfold_splitter import Fold
from .logger import get_logger
from .model_adapter import fit_model, predict
from .model_zoo import CLASSIFICATION
from .preprocessor import fit_pipeline
from ..schemas import CombinationScore, HarnessConfig, OutputKind, TuningSummary

logger = get_logger("tuner")


@dataclass
class TuningResult:
    metric: str
    maximize: bool
    combinations: List[Dict[str, Any]]
    fold_scores: Dict[Tuple[int, int], float] = field(default_factory=dict)
    best_index: int = 0

    @property
    def best_hyperparameters(self) -> Dict[str, Any]:
        return dict(self.combinations[self.best_index])

    def scores_for(self, combo_idx: int) -> List[float]:
        n_folds = len({fold for (_, fold) in self.fold_scores})
        return [self.fold_scores[(combo_idx, f)] for f in range(n_folds)]

    def mean_score(self, combo_idx: int) -> float:
        """Mean over the folds where the metric is defined; NaN when it is defined on none."""
        defined = _defined(self.scores_for(combo_idx))
        return float(np.mean(defined)) if defined else float("nan")

    def std_score(self, combo_idx: int) -> float:
        defined = _defined(self.scores_for(combo_idx))
        return float(np.std(defined)) if defined else float("nan")

    def to_summary(self) -> TuningSummary:
        results = []
        for i, combo in enumerate(self.combinations):
            results.append(CombinationScore(
                hyperparameters=dict(combo),
                mean_score=_rounded(self.mean_score(i)),
                std_score=_rounded(self.std_score(i)),
                fold_scores=[_rounded(s) for s in self.scores_for(i)],
            ))
        return TuningSummary(
            metric=self.metric,
            maximize=self.maximize,
            n_folds=len(self.scores_for(0)) if self.combinations else 0,
            best_hyperparameters=self.best_hyperparameters,
            best_score=_rounded(self.mean_score(self.best_index)),
            results=results,
        )


def expand_grid(grid) -> List[Dict[str, Any]]:
    """
    A mapping of name -> values expands to the Cartesian product in key order
    (last key varies fastest); a list of combinations is taken as given.
    """
    if grid is None:
        raise InvalidArgument("hyperparameter_grid is empty", field="hyperparameter_grid")

    if isinstance(grid, dict):
        if not grid:
            raise InvalidArgument("hyperparameter_grid is empty", field="hyperparameter_grid")
        keys = list(grid.keys())
        values = []
        for key in keys:
            options = grid[key]
            if not isinstance(options, (list, tuple)) or len(options) == 0:
                raise InvalidArgument(
                    f"hyperparameter_grid['{key}'] must be a non-empty list",
                    field="hyperparameter_grid",
                    parameter=key,
                )
            values.append(list(options))
        return [dict(zip(keys, combo)) for combo in product(*values)]

    combinations = [dict(c) for c in grid]
    if not combinations:
        raise InvalidArgument("hyperparameter_grid is empty", field="hyperparameter_grid")
    return combinations


def select_best(means: Sequence[float], maximize: bool) -> int:
    """
    Index of the best mean score; the earliest combination wins ties.
    Undefined (NaN) means rank below every defined one.
    """
    best_idx = None
    for i, score in enumerate(means):
        if math.isnan(score):
            continue
        if best_idx is None:
            best_idx = i
        elif score > means[best_idx] if maximize else score < means[best_idx]:
            best_idx = i
    if best_idx is None:
        raise InsufficientData(
            "Tuning metric is undefined on every fold for every combination; "
            "use a stratify column or fewer cv_folds",
            field="cv_folds",
        )
    return best_idx


def score_fold(
    train_frame: pd.DataFrame,
    fold: Fold,
    hyperparameters: Dict[str, Any],
    config: HarnessConfig,
    mode: str,
    metric: str,
) -> float:
    """Preprocess -> fit -> predict -> score for one (combination, fold) pair."""
    target = config.target_column
    train_idx, val_idx = fold
    fold_train = train_frame.iloc[train_idx]
    fold_val = train_frame.iloc[val_idx]

    pipeline = fit_pipeline(config.pipeline_spec, fold_train.drop(columns=[target]))
    x_train = pipeline.apply(fold_train.drop(columns=[target]))
    x_val = pipeline.apply(fold_val.drop(columns=[target]))
    x_train[target] = fold_train[target].to_numpy()

    model = fit_model(
        config.model_kind,
        hyperparameters,
        x_train,
        target,
        mode=mode,
        positive_class=config.positive_class,
        seed=config.seed,
    )

    if mode == CLASSIFICATION:
        labels = predict(model, x_val, OutputKind.class_label)
        proba = predict(model, x_val, OutputKind.class_probability) if metric == "roc_auc" else None
    else:
        labels = predict(model, x_val, OutputKind.numeric_value)
        proba = None

    scores = compute_metrics(
        [metric],
        fold_val[target],
        mode,
        predictions=labels,
        probabilities=proba,
        classes=model.classes,
        positive_class=model.positive_class,
    )
    return scores[metric]


def tune(
    train_frame: pd.DataFrame,
    config: HarnessConfig,
    folds: List[Fold],
    mode: str,
    metric: Optional[str] = None,
) -> TuningResult:
    """
    Runs every (combination, fold) task, possibly in parallel workers; results
    are keyed by (combination index, fold index) so completion order is irrelevant.
    """
    metric = metric or config.tuning_metric or (config.metrics[0] if config.metrics else None)
    if metric is None:
        raise InvalidArgument("Tuning needs a metric: set tuning_metric or metrics", field="tuning_metric")
    maximize = is_maximized(metric)

    combinations = expand_grid(config.hyperparameter_grid)
    tasks = [
        (ci, fi, {**config.hyperparameters, **combo}, fold)
        for ci, combo in enumerate(combinations)
        for fi, fold in enumerate(folds)
    ]
    logger.info(
        f"Tuning {len(combinations)} combination(s) x {len(folds)} fold(s) on '{metric}' "
        f"({'maximize' if maximize else 'minimize'})"
    )

    scores = Parallel(n_jobs=config.n_jobs)(
        delayed(score_fold)(train_frame, fold, params, config, mode, metric)
        for _, _, params, fold in tasks
    )

    result = TuningResult(metric=metric, maximize=maximize, combinations=combinations)
    for (ci, fi, _, _), score in zip(tasks, scores):
        result.fold_scores[(ci, fi)] = float(score)

    undefined = sum(1 for s in result.fold_scores.values() if math.isnan(s))
    if undefined:
        logger.warning(f"'{metric}' undefined on {undefined} of {len(tasks)} fold evaluation(s); left out of the means")

    means = [result.mean_score(i) for i in range(len(combinations))]
    result.best_index = select_best(means, maximize)
    logger.info(
        f"Selected {result.best_hyperparameters} with mean {metric}={means[result.best_index]:.4f}"
    )
    return result


def _defined(scores: Sequence[float]) -> List[float]:
    return [s for s in scores if not math.isnan(s)]


def _rounded(score: float) -> Optional[float]:
    # NaN has no JSON form; undefined scores are reported as null
    return None if math.isnan(score) else round(score, 6)
