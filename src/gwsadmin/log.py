"""
Logging setup for the command line.  Everything goes to stderr so stdout
stays clean for formatted output.
"""
from datetime import datetime, timezone
import json
import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "gwsadmin"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "disabled": logging.CRITICAL + 10,
}

logger = logging.getLogger(LOGGER_NAME)


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for k in ("operation", "resource", "key"):
            if hasattr(record, k):
                entry[k] = getattr(record, k)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def parse_level(level: str|None) -> int:
    """Unknown or empty level names fall back on INFO."""
    return _LEVELS.get(str(level or "").strip().lower(), logging.INFO)


def setup_logging(level: str|None = "info", verbose: bool = False, json_format: bool = False) -> logging.Logger:
    """
    Configure the package logger.  Safe to call more than once, handlers are
    replaced rather than stacked.
    """
    log_level = logging.DEBUG if verbose else parse_level(level)
    logger.handlers.clear()
    logger.setLevel(log_level)
    logger.propagate = False
    if json_format:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=verbose,
            log_time_format="[%H:%M:%S]",
        )
    handler.setLevel(log_level)
    logger.addHandler(handler)
    return logger


def log_api_call(operation: str, resource: str, **params) -> None:
    """Debug trail of outbound API calls."""
    api_logger = logging.getLogger(f"{LOGGER_NAME}.api")
    detail = " ".join(f"{k}={v}" for k, v in params.items() if v not in (None, ""))
    api_logger.debug("API call %s %s %s", operation, resource, detail,
                     extra={"operation": operation, "resource": resource})
