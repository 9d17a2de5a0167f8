# app/ML_framework_evaluation/core/upload_handler.py
import io
from fastapi import UploadFile, HTTPException
import pandas as pd


async def handle_csv_upload(file: UploadFile, max_upload_mb: int = 50) -> pd.DataFrame:
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files allowed")

    content = await file.read()
    if len(content) > max_upload_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"CSV larger than {max_upload_mb} MB")

    try:
        df = pd.read_csv(io.BytesIO(content))
    except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid CSV: {str(e)}")

    if df.empty or len(df.columns) < 2:
        raise HTTPException(status_code=400, detail="CSV must have ≥2 columns and not be empty")

    return df
