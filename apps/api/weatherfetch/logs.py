from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL = os.environ.get("WEATHERFETCH_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> logging.Logger:
    root = logging.getLogger("weatherfetch")
    root.setLevel(level.upper())
    # idempotent: both apps call this at import
    if not any(getattr(h, "_weatherfetch", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._weatherfetch = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root
