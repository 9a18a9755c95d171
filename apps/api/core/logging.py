"""
Structured logging for the scoring services.

Every service logs through `logging.getLogger(__name__)`. Structured context
(client id, score, band, cache write outcome) rides along as
`extra=log_fields(...)` and is merged into the JSON line; the text formatter
appends it as key=value pairs.

Logging is configured once on import. Re-running `setup_logging()` replaces
only the handler it installed itself, so handlers added by a host
application or the test runner are left alone.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.config import settings

HANDLER_NAME = "checkin-scoring-console"

NOISY_LOGGERS = ("sqlalchemy.engine", "urllib3", "httpx", "google_genai")


def log_fields(**fields: Any) -> Dict[str, Dict[str, Any]]:
    """Build the `extra=` argument for a structured log call."""
    return {"extra_fields": fields}


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "environment": settings.ENVIRONMENT,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for development, structured fields appended."""

    def __init__(self):
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict) and extra_fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in extra_fields.items())
        return line


def _use_json(log_format: Optional[str]) -> bool:
    return (log_format or settings.LOG_FORMAT) == "json" or settings.ENVIRONMENT == "production"


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger from settings.

    JSON in production or when LOG_FORMAT is "json", text otherwise.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    formatter = JSONFormatter() if _use_json(log_format) else TextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        if handler.get_name() == HANDLER_NAME:
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.set_name(HANDLER_NAME)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


# Initialize logging on import
setup_logging()
