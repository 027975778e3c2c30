"""Logging setup driven by `LoggingSettings`.

Emits JSON lines by default so the output can be shipped as-is; `LOG_FORMAT=text`
switches to a human-readable layout for local work.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from .config import LoggingSettings, settings

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_configured = False


class JsonFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(config: LoggingSettings | None = None, *, force: bool = False) -> None:
    """Configure the root logger once per process.

    Args:
        config: Logging settings (defaults to the global settings)
        force: Reconfigure even if logging was already set up
    """
    global _configured
    if _configured and not force:
        return

    config = config or settings.logging
    formatter: logging.Formatter = (
        JsonFormatter() if config.format == "json" else logging.Formatter(TEXT_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file, encoding="utf-8"))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(config.level.upper())

    # SQLAlchemy is noisy at INFO when echo is off; keep its warnings only
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
