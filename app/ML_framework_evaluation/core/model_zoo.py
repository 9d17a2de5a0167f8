# app/ML_framework_evaluation/core/model_zoo.py
import numbers
from typing import Any, Dict

from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.neighbors import KNeighborsClassifier, KNeighborsRegressor
from sklearn.svm import SVC, SVR

from .errors import InvalidHyperparameter
from ..schemas import ModelKind, ModelMode

CLASSIFICATION = ModelMode.classification.value
REGRESSION = ModelMode.regression.value


# === Hyperparameter validators ===
def _positive_number(kind: str, name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not value > 0:
        raise InvalidHyperparameter(
            f"{kind}: '{name}' must be a number > 0, got {value!r}",
            model_kind=kind, parameter=name, value=value,
        )
    return float(value)


def _neighbors(kind: str, value: Any, n_train: int) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        else:
            raise InvalidHyperparameter(
                f"{kind}: 'neighbors' must be an integer, got {value!r}",
                model_kind=kind, parameter="neighbors", value=value,
            )
    if not 1 <= value <= n_train:
        raise InvalidHyperparameter(
            f"{kind}: 'neighbors' must be between 1 and the training row count ({n_train}), got {value}",
            model_kind=kind, parameter="neighbors", value=value, training_rows=n_train,
        )
    return int(value)


def _choice(kind: str, name: str, value: Any, allowed) -> str:
    if not isinstance(value, str) or value not in allowed:
        raise InvalidHyperparameter(
            f"{kind}: '{name}' must be one of {sorted(allowed)}, got {value!r}",
            model_kind=kind, parameter=name, value=value,
        )
    return value


# === Estimator builders ===
# Each builder gets the resolved hyperparameters, the mode, the training row count and the seed.
def _build_linear_regression(params, mode, n_train, seed):
    return LinearRegression()


def _build_logistic_regression(params, mode, n_train, seed):
    penalty = _positive_number(ModelKind.logistic_regression.value, "penalty", params["penalty"])
    return LogisticRegression(C=1.0 / penalty, max_iter=1000)


def _build_knn(params, mode, n_train, seed):
    kind = ModelKind.knn.value
    n_neighbors = _neighbors(kind, params["neighbors"], n_train)
    weights = _choice(kind, "weight_func", params["weight_func"], {"uniform", "distance"})
    if mode == CLASSIFICATION:
        return KNeighborsClassifier(n_neighbors=n_neighbors, weights=weights)
    return KNeighborsRegressor(n_neighbors=n_neighbors, weights=weights)


def _build_svm_rbf(params, mode, n_train, seed):
    kind = ModelKind.svm_rbf.value
    cost = _positive_number(kind, "cost", params["cost"])
    sigma = params["rbf_sigma"]
    gamma = "scale" if sigma is None else _positive_number(kind, "rbf_sigma", sigma)
    if mode == CLASSIFICATION:
        return SVC(kernel="rbf", C=cost, gamma=gamma, probability=True, random_state=seed)
    return SVR(kernel="rbf", C=cost, gamma=gamma)


def get_model_zoo() -> Dict[str, Dict[str, Any]]:
    return {
        ModelKind.linear_regression.value: {
            "name": "Linear Regression",
            "modes": (REGRESSION,),
            "defaults": {},
            "build": _build_linear_regression,
        },
        ModelKind.logistic_regression.value: {
            "name": "Logistic Regression",
            "modes": (CLASSIFICATION,),
            "defaults": {"penalty": 1.0},
            "build": _build_logistic_regression,
        },
        ModelKind.knn.value: {
            "name": "K-Nearest Neighbors",
            "modes": (CLASSIFICATION, REGRESSION),
            "defaults": {"neighbors": 5, "weight_func": "uniform"},
            "build": _build_knn,
        },
        ModelKind.svm_rbf.value: {
            "name": "SVM (RBF kernel)",
            "modes": (CLASSIFICATION, REGRESSION),
            "defaults": {"cost": 1.0, "rbf_sigma": None},
            "build": _build_svm_rbf,
        },
    }


MODEL_ZOO = get_model_zoo()
