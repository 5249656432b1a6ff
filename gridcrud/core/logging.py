"""
Process-wide logging configuration.

Modules log through ``logging.getLogger(__name__)``; this module only wires the
root handler once, in either a human-readable or a JSON-lines format.
"""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger import jsonlogger

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO", format_type: str = "text") -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if format_type == "json":
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(str(level or "INFO").upper())
    return handler
