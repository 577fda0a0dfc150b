"""
Logging setup: one JSON object per line, or plain text for local runs
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

_BASE_RECORD_KEYS = set(logging.makeLogRecord({}).__dict__.keys())
_KNOWN_FIELDS = {
    "source",
    "log_id",
    "state",
    "sink",
    "status_code",
    "error",
    "method",
    "path",
    "duration_ms",
    "stage",
}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        fields: Dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _BASE_RECORD_KEYS or key.startswith("_"):
                continue
            if key in _KNOWN_FIELDS:
                fields[key] = value

        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        error_value = fields.get("error")
        if isinstance(error_value, str):
            fields["error"] = error_value[:500]

        payload["fields"] = fields
        return json.dumps(payload, default=str)


def configure_logging(level_name: str = "INFO", json_output: bool = True) -> None:
    root_logger = logging.getLogger()
    if getattr(root_logger, "_relay_configured", False):
        return

    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    if json_output:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    root_logger._relay_configured = True  # type: ignore[attr-defined]
