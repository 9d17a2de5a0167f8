# app/ML_framework_evaluation/core/settings.py
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root: app/ML_framework_evaluation/core/settings.py -> repo root
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """
    Service-level settings. Per-run behaviour lives in HarnessConfig,
    never here.
    """

    model_config = SettingsConfigDict(
        env_prefix="HARNESS_",
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    app_name: str = "Tabular Model Evaluation Harness"
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"
    log_dir: Path = PROJECT_ROOT / "logs"
    model_dir: Path = PROJECT_ROOT / "saved_models"
    max_upload_mb: int = 50


def get_settings() -> Settings:
    return Settings()
