"""Log handler setup for the command line entry point.

Two output modes are supported:

* plain text (default), ``LEVEL logger: message`` on stderr;
* single-line JSON objects, enabled with ``SCHEMA_STRUCTURED_LOGGING=true``
  for ingestion by log aggregators.

JSON output schema per line::

    {
        "timestamp": "2026-05-15T12:34:56.789012+00:00",
        "level": "INFO",
        "logger": "schema_engine.audit.auditor",
        "message": "Audit finished",
        "table": "glpi_users",          // present when logged with extra={"table": ...}
        "exc_info": "Traceback ..."     // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

_TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        table = getattr(record, "table", None)
        if table is not None:
            payload["table"] = table

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(*, verbose: bool = False, structured: bool = False) -> None:
    """Replace the root logger's handlers with a single stderr handler.

    Parameters
    ----------
    verbose:
        Log at DEBUG instead of WARNING.
    structured:
        Emit JSON lines via :class:`JSONFormatter` instead of plain text.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if structured else logging.Formatter(_TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
