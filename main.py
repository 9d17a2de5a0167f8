# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from app.ML_framework_evaluation.router import router as evaluation_router
from app.ML_framework_evaluation.core.logger import LogManager
from app.ML_framework_evaluation.core.settings import get_settings

settings = get_settings()
LogManager("evaluation-harness", debug=settings.debug, log_dir=settings.log_dir, level=settings.log_level)

app = FastAPI(
    title=settings.app_name,
    description="Split / preprocess / fit / predict / score harness for tabular models",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS - Adjust in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Change to specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(evaluation_router, prefix="/api/evaluation", tags=["Model Evaluation"])

@app.get("/")
async def root():
    return {"message": "Model evaluation harness is running!", "docs": "/docs"}

if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug, log_level=settings.log_level.lower())
