import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Optional

from docstore.core.context import get_request_id, get_tenant_label
from docstore.core.settings import settings

AUDIT_LOGGER = "docstore.audit"
_REDACTED_FIELDS = frozenset({"access_key", "secret_key", "password", "authorization"})


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.tenant = get_tenant_label()
        record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Structured data travels in ``extra={"fields": {...}}``; credential-looking
    keys are replaced before anything is written.
    """

    def __init__(self, stream_label: str = "transactional") -> None:
        super().__init__()
        self.stream_label = stream_label

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "stream": self.stream_label,
            "tenant": getattr(record, "tenant", "-"),
            "request_id": getattr(record, "request_id", "-"),
            "message": record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            entry.update(
                {key: "***" if key in _REDACTED_FIELDS else value for key, value in fields.items()}
            )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _stdout_handler(level: str, formatter: str) -> dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["request_context"],
        "stream": "ext://sys.stdout",
    }


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or settings.log_level).upper()

    def _logger(handler: str, logger_level: str = log_level) -> dict[str, Any]:
        return {"handlers": [handler], "level": logger_level, "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_context": {"()": RequestContextFilter}},
            "formatters": {
                "json": {"()": JsonFormatter},
                "audit_json": {"()": JsonFormatter, "stream_label": "audit"},
            },
            "handlers": {
                "default": _stdout_handler(log_level, "json"),
                "audit": _stdout_handler(log_level, "audit_json"),
            },
            "loggers": {
                "": _logger("default"),
                AUDIT_LOGGER: _logger("audit"),
                "botocore": _logger("default", "WARNING"),
                "uvicorn": _logger("default"),
                "uvicorn.error": _logger("default"),
                "uvicorn.access": _logger("default"),
            },
        }
    )
    logging.getLogger(__name__).info(
        "Logging ready", extra={"fields": {"environment": settings.environment, "level": log_level}}
    )


def audit(event: str, **fields: Any) -> None:
    """Record a storage admin or document lifecycle event on the audit stream."""
    logging.getLogger(AUDIT_LOGGER).info(event, extra={"fields": {"event": event, **fields}})
