# app/ML_framework_evaluation/core/session.py
from typing import Any, Dict, Optional
import numpy as np
import pandas as pd


class HarnessSession:
    """
    Working state of one harness run. Each EvaluationHarness owns its own
    session; nothing here is shared between runs.
    """

    def __init__(self):
        self.dataset: Optional[pd.DataFrame] = None
        self.mode: Optional[str] = None
        self.hyperparameters: Dict[str, Any] = {}
        self.train_idx: Optional[np.ndarray] = None
        self.test_idx: Optional[np.ndarray] = None
        self.train_frame: Optional[pd.DataFrame] = None
        self.test_frame: Optional[pd.DataFrame] = None
        self.split_summary: Optional[dict] = None
        self.pipeline = None
        self.X_train: Optional[pd.DataFrame] = None
        self.X_test: Optional[pd.DataFrame] = None
        self.folds: Optional[list] = None
        self.tuning = None
        self.model = None
        self.y_pred: Optional[pd.Series] = None
        self.y_prob: Optional[pd.DataFrame] = None
        self.metrics: Optional[Dict[str, float]] = None
        self.confusion_matrix: Optional[list] = None
