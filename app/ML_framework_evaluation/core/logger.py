# app/ML_framework_evaluation/core/logger.py
import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger


class LogManager:
    """Configures loguru sinks once for a service; components bind their own context."""

    def __init__(
        self,
        service_name: str,
        debug: bool = False,
        log_dir: Optional[Path] = None,
        level: str = "INFO",
    ):
        self.service_name = service_name
        self.debug = debug
        self.log_dir = log_dir
        self.level = level
        self._configure()

    def _configure(self):
        _logger.remove()

        # Console Handler
        _logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[context]}</cyan> | <level>{message}</level>",
            level="DEBUG" if self.debug else self.level,
            colorize=True,
        )

        # File Handler
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            _logger.add(
                self.log_dir / f"{self.service_name}.json.log",
                rotation="10 MB",
                retention="7 days",
                level="DEBUG" if self.debug else self.level,
                serialize=True,
                enqueue=True,
            )


def get_logger(context_name: str):
    """Logger bound to a component name; works before LogManager is configured."""
    return _logger.bind(context=context_name)
