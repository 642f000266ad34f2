from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record; structured events pass through as-is."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        event = getattr(record, "event_fields", None)
        if isinstance(event, dict):
            payload.update(event)
        else:
            payload["message"] = record.getMessage()
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None, json_lines: bool = False) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout if json_lines else sys.stderr)
    handler.setFormatter(JsonLineFormatter() if json_lines else logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)
    root.setLevel((level or "INFO").upper())


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a structured event.

    Plain handlers see a JSON line as the message; the JSON formatter merges
    the fields into its own envelope.
    """
    if not logger.isEnabledFor(level):
        return
    event_out = {"event": event, **fields}
    logger.log(
        level,
        json.dumps(event_out, ensure_ascii=False, default=str),
        extra={"event_fields": event_out},
    )
