"""JSON logging for the service and the append-only ingestion audit trail.

Every record becomes a single JSON object. A record whose ``msg`` is a dict
(see :func:`docchat.telemetry.log_event`) is merged into the object instead
of being rendered as text, and anything passed through ``extra=`` is kept.
"""
from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

AUDIT_LOGGER_NAME = "docchat.ingest.audit"
AUDIT_FILE_NAME = "ingest_audit.log"

# Libraries that are chatty at INFO; raise them to WARNING.
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "openai")

_STANDARD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _utc_timestamp(created: float) -> str:
    moment = datetime.fromtimestamp(created, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JSONLogFormatter(logging.Formatter):
    """Render a record as one line of JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            text = record.getMessage()
            if text:
                payload["message"] = text

        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRIBUTES and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config(log_dir: str | Path, level: str = "INFO") -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping for the given log directory and level."""

    audit_path = Path(log_dir) / AUDIT_FILE_NAME
    loggers: Dict[str, Any] = {name: {"level": "WARNING"} for name in QUIET_LOGGERS}
    loggers[AUDIT_LOGGER_NAME] = {
        "level": "INFO",
        "handlers": ["audit_file"],
        "propagate": False,
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": JSONLogFormatter}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "json"},
            "audit_file": {
                "class": "logging.FileHandler",
                "filename": str(audit_path),
                "encoding": "utf-8",
                "delay": True,
                "formatter": "json",
            },
        },
        "root": {"level": level.upper(), "handlers": ["console"]},
        "loggers": loggers,
    }


def configure_logging(log_dir: str | Path = "logs", level: str = "INFO") -> Path:
    """Install the JSON logging setup and return the audit log path."""

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(directory, level))
    return directory / AUDIT_FILE_NAME
