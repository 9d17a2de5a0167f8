# app/ML_framework_evaluation/router.py

import json
from fastapi import APIRouter, Depends, File, UploadFile, Form, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

# Core functions
from .core.upload_handler import handle_csv_upload
from .core.data_analyzer import analyze_dataset
from .core.harness import EvaluationHarness
from .core.persistence import save_bundle_to_dir
from .core.settings import Settings, get_settings
from .core.logger import get_logger
from .core.errors import (
    HarnessError,
    ColumnNotFound,
    FitFailure,
    DeadlineExceeded,
)

# Response models
from .schemas import EvaluationReport, DataUnderstandingReport, HarnessConfig

router = APIRouter()
logger = get_logger("router")


def _status_for(error: HarnessError) -> int:
    if isinstance(error, ColumnNotFound):
        return 404
    if isinstance(error, FitFailure):
        return 500
    if isinstance(error, DeadlineExceeded):
        return 504
    return 422


# =============================================
# ONE CALL = SPLIT + PREPROCESS + (TUNE) + FIT + SCORE
# =============================================
@router.post("/run/", response_model=EvaluationReport)
async def run_evaluation(
    file: UploadFile = File(...),
    config: str = Form(...),           # JSON string of HarnessConfig
    save_model: bool = Form(False),
    settings: Settings = Depends(get_settings),
):
    """
    Upload CSV + evaluation config → harness runs immediately.
    Returns metrics, per-row predictions and (optionally) the saved bundle path.
    """

    # Step 1: Upload CSV
    df = await handle_csv_upload(file, settings.max_upload_mb)

    # Step 2: Parse config
    try:
        harness_config = HarnessConfig(**json.loads(config))
    except (json.JSONDecodeError, TypeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid config JSON: {e}")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=json.loads(e.json()))

    # Step 3: Run the harness (CPU-bound, off the event loop)
    harness = EvaluationHarness(harness_config)
    try:
        result = await run_in_threadpool(harness.run, df)
    except HarnessError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.to_dict())

    # Step 4: Persist bundle
    model_file = None
    if save_model:
        model_file = save_bundle_to_dir(result.model, result.pipeline, settings.model_dir)
        logger.info(f"Saved model bundle to {model_file}")

    return result.to_report(model_file=model_file)


@router.post("/analyze/", response_model=DataUnderstandingReport)
async def analyze(
    file: UploadFile = File(...),
    target_column: str = Form(...),
    settings: Settings = Depends(get_settings),
):
    df = await handle_csv_upload(file, settings.max_upload_mb)
    try:
        return analyze_dataset(df, target_column)
    except HarnessError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.to_dict())
