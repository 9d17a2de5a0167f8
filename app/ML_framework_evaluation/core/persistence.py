# app/ML_framework_evaluation/core/persistence.py
import io
import os
from datetime import datetime
from pathlib import Path
from typing import Tuple, Union

import joblib

from .errors import InvalidArgument
from .model_adapter import FittedModel
from .preprocessor import FittedPipeline

BUNDLE_FORMAT = "evaluation-bundle/1"


def save_bundle(model: FittedModel, pipeline: FittedPipeline) -> bytes:
    """Serializes a fitted (model, pipeline) pair into an opaque blob."""
    buffer = io.BytesIO()
    joblib.dump({"format": BUNDLE_FORMAT, "model": model, "pipeline": pipeline}, buffer)
    return buffer.getvalue()


def load_bundle(blob: bytes) -> Tuple[FittedModel, FittedPipeline]:
    try:
        payload = joblib.load(io.BytesIO(blob))
    except Exception as e:
        raise InvalidArgument(f"Not a model bundle: {e}", field="blob") from e

    if not isinstance(payload, dict) or payload.get("format") != BUNDLE_FORMAT:
        raise InvalidArgument("Not a model bundle: unexpected payload", field="blob")
    model, pipeline = payload["model"], payload["pipeline"]
    if not isinstance(model, FittedModel) or not isinstance(pipeline, FittedPipeline):
        raise InvalidArgument("Not a model bundle: unexpected contents", field="blob")
    return model, pipeline


def save_bundle_to_dir(
    model: FittedModel,
    pipeline: FittedPipeline,
    directory: Union[str, Path] = "saved_models",
) -> str:
    """Writes the bundle as saved_models/model_<kind>_<timestamp>.pkl and returns the path."""
    os.makedirs(directory, exist_ok=True)
    safe_name = "".join(c if c.isalnum() else "_" for c in model.kind.lower())
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    model_path = os.path.join(str(directory), f"model_{safe_name}_{timestamp}.pkl")
    with open(model_path, "wb") as fh:
        fh.write(save_bundle(model, pipeline))
    return model_path


def load_bundle_from_file(path: Union[str, Path]) -> Tuple[FittedModel, FittedPipeline]:
    with open(path, "rb") as fh:
        return load_bundle(fh.read())
