"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if not any(getattr(h, "_schoolops", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._schoolops = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)
