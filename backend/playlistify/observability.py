"""Logging setup: JSON lines in production, plain text for local runs.

Service code passes session context through ``extra``, e.g.
``logger.info("...", extra={"session_id": sid, "uid": uid, "key": key})``.
"""

import json
import logging
from datetime import datetime, timezone

# Session context carried by queue, user and socket log records
CONTEXT_FIELDS = ("session_id", "uid", "key", "sid", "event", "error_code", "path")


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update({
            name: record.__dict__[name]
            for name in CONTEXT_FIELDS
            if record.__dict__.get(name) is not None
        })
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


class ContextTextFormatter(logging.Formatter):
    """Text lines with the session context appended as ``name=value``."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{name}={record.__dict__[name]}"
            for name in CONTEXT_FIELDS
            if record.__dict__.get(name) is not None
        )
        return f"{line} [{context}]" if context else line


def setup_logging(level: str = "INFO", fmt: str = "json"):
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ContextTextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logging.root.handlers = [handler]
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
