"""Structured Logging: one JSON object per line, carrying contract call metadata.

Invariants:
    - Every line has timestamp (record creation time, UTC), level, logger, message
    - Contract extras (contract, call_state, error_kind) appear only when set
    - setup_logging() installs at most one SafeCall handler on the root logger

Design Decisions:
    - Stdlib logging + JSONFormatter: contracts log with extra={...}, no logger wrapper
    - Same setup for the API lifespan and the CLI entry point; only level/format differ
"""

import json
import logging
from datetime import datetime, timezone

CONTRACT_FIELDS = ("contract", "call_state", "error_kind")
REQUEST_FIELDS = ("error_code", "path", "status_code", "operation")

# Third-party loggers that drown contract logs at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, record.__dict__[key])
            for key in CONTRACT_FIELDS + REQUEST_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the SafeCall root handler, replacing one from an earlier call."""
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, "safecall", False)]:
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.safecall = True
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
