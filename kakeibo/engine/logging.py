"""Structured logging helpers shared by the API, the stores and the CLI."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "INFO"
LOG_DIR_ENV_FLAG: Final[str] = "KAKEIBO_LOG_DIR"
JSON_ENV_FLAG: Final[str] = "KAKEIBO_JSON_LOGS"
LEVEL_ENV_FLAG: Final[str] = "KAKEIBO_LOG_LEVEL"
DEFAULT_LOG_DIR: Final[Path] = Path("artifacts") / "logs"
LOG_FILENAME: Final[str] = "kakeibo.log"
ROOT_LOGGER: Final[str] = "kakeibo"


class JsonAuditFormatter(logging.Formatter):
    """Format log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC).isoformat()
        payload = {
            "timestamp": timestamp,
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
            "user_id": _coerce_int(getattr(record, "user_id", None)),
            "rows_processed": _coerce_int(getattr(record, "rows_processed", None)),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _coerce_int(value: object) -> int | None:
    if value is None:
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None


def log_path() -> Path:
    """Return the JSON audit log location, honouring ``KAKEIBO_LOG_DIR``."""

    root = os.environ.get(LOG_DIR_ENV_FLAG)
    return (Path(root) if root else DEFAULT_LOG_DIR) / LOG_FILENAME


def _resolve_level(level: str | int | None) -> int:
    """Pick the log level from the environment, the caller or the default."""

    env_level = os.environ.get(LEVEL_ENV_FLAG)
    if env_level:
        candidate = env_level.strip().upper()
    elif isinstance(level, str):
        candidate = level.strip().upper()
    elif isinstance(level, int):
        return int(level)
    else:
        candidate = DEFAULT_LEVEL
    resolved = logging.getLevelName(candidate)
    return int(resolved) if isinstance(resolved, int) else logging.INFO


def _json_logging_enabled(explicit: bool) -> bool:
    if explicit:
        return True
    value = os.environ.get(JSON_ENV_FLAG)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _ensure_console_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_kakeibo_console", False):
            handler.setLevel(level)
            return
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    stream_handler._kakeibo_console = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)


def _ensure_json_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_kakeibo_json", False):
            handler.setLevel(level)
            return
    target = log_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    json_handler = logging.FileHandler(target, encoding="utf-8")
    json_handler.setLevel(level)
    json_handler.setFormatter(JsonAuditFormatter())
    json_handler._kakeibo_json = True  # type: ignore[attr-defined]
    logger.addHandler(json_handler)


def setup_logger(
    name: str,
    json_format: bool = False,
    level: str | int | None = None,
) -> logging.Logger:
    """Configure and return a logger for kakeibo modules.

    Calling it repeatedly for the same name never stacks handlers.
    """

    resolved_level = _resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    # Keep propagation so pytest's caplog still sees the records.
    logger.propagate = True
    _ensure_console_handler(logger, resolved_level)
    if _json_logging_enabled(json_format):
        _ensure_json_handler(logger, resolved_level)
    return logger


def configure_cli_logging(json_logs: bool, level: str | int | None = None) -> None:
    """Reconfigure existing kakeibo and backend loggers for a CLI run."""

    if json_logs:
        os.environ[JSON_ENV_FLAG] = "1"
    else:
        os.environ.pop(JSON_ENV_FLAG, None)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not isinstance(logger, logging.Logger):
            continue
        if not name.startswith((ROOT_LOGGER, "backend")):
            continue
        setup_logger(name, json_format=json_logs, level=level)
    setup_logger(ROOT_LOGGER, json_format=json_logs, level=level)


__all__ = ["JsonAuditFormatter", "configure_cli_logging", "log_path", "setup_logger"]
