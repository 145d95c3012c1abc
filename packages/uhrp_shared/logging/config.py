"""Root logger setup for the host process: one stdout handler, JSON or plain."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, Mapping

from .context import current_fields

# Attributes every LogRecord carries; anything else on a record came from ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_") and value is not None
    }


class HostLogFormatter(logging.Formatter):
    """Render one record with process, scoped and ``extra=`` fields.

    JSON mode writes one object per line. Plain mode writes
    ``time LEVEL logger message`` followed by the fields as sorted
    ``key=value`` pairs, then any traceback.
    """

    def __init__(
        self, *, json_output: bool, process_fields: Mapping[str, str] | None = None
    ) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self._json_output = json_output
        self._process_fields = dict(process_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        structured = {**self._process_fields, **current_fields(), **_extras(record)}
        if self._json_output:
            document: dict[str, Any] = {
                "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                **structured,
            }
            if record.exc_info:
                document["exception"] = self.formatException(record.exc_info)
            return json.dumps(document, default=str, separators=(",", ":"))

        parts = [
            self.formatTime(record, self.datefmt),
            record.levelname,
            record.name,
            record.getMessage(),
            *(f"{key}={value}" for key, value in sorted(structured.items())),
        ]
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
) -> None:
    """Replace the root handlers with a single stdout handler.

    ``service`` and ``environment`` are stamped on every line the process writes.
    """
    process_fields = {
        key: value
        for key, value in (("service", service), ("environment", environment))
        if value
    }
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        HostLogFormatter(json_output=json_output, process_fields=process_fields)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())
    root.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
