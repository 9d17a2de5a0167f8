# app/ML_framework_evaluation/core/errors.py
from typing import Any, Dict, Optional


class HarnessError(Exception):
    """
    Base class for every error raised by the evaluation harness.
    `context` names the offending field / column / value.
    `state` is filled in by the harness with the state the error occurred in.
    """

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context
        self.state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "context": {k: _jsonable(v) for k, v in self.context.items()},
            "state": self.state,
        }


class InvalidArgument(HarnessError, ValueError):
    pass


class InsufficientData(HarnessError, ValueError):
    pass


class ColumnNotFound(HarnessError, ValueError):
    pass


class SchemaMismatch(HarnessError, ValueError):
    pass


class UnknownStepKind(HarnessError, ValueError):
    pass


class UnsupportedOutput(HarnessError, ValueError):
    pass


class InvalidHyperparameter(HarnessError, ValueError):
    pass


class FitFailure(HarnessError, RuntimeError):
    pass


class DeadlineExceeded(HarnessError, TimeoutError):
    pass


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)
