"""Logging setup for the fantasy league service.

The level comes from the ``JPL_LOG_LEVEL`` environment variable when the
caller does not pass one (``DEBUG`` shows per-player missing-points lines).
"""

import logging
import os
import sys

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.environ.get("JPL_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        resolved = getattr(logging, level.upper(), None)
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def setup_logging(level: int | str | None = None) -> None:
    """Attach one stdout handler to the root logger (no-op if one exists)."""
    root = logging.getLogger()
    if root.handlers:
        return

    resolved = _resolve_level(level)
    root.setLevel(resolved)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)

    # Per-request access lines from the dev server.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Named logger; configures the root logger on first use."""
    setup_logging()
    return logging.getLogger(name)
