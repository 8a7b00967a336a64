from __future__ import annotations

import logging
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Route log records to stderr so stdout stays reserved for tool output."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        if getattr(handler, "_scraperis", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._scraperis = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # httpx logs every request at INFO, which drowns the poll loop output.
    logging.getLogger("httpx").setLevel(logging.WARNING)
