from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

PLAIN_FORMAT = "%(levelname)s %(name)s %(message)s"

# Structured attributes passed through ``extra=`` by the API, sales and live loggers.
_CONTEXT_FIELDS = ("request_id", "company_id")
_OPTIONAL_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "campaign_id",
    "sale_id",
    "invitation_id",
    "subscribers",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            payload[field] = getattr(record, field, None)
        payload.update({field: getattr(record, field) for field in _OPTIONAL_FIELDS if hasattr(record, field)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(*, log_level: str, app_env: str) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if app_env.lower() == "production" else logging.Formatter(PLAIN_FORMAT))
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)
    # SQL echo stays opt-in even at DEBUG.
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
