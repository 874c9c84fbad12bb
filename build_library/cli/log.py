"""Logging setup shared by CLI commands."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "BUILD_LIBRARY_LOG_LEVEL"


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging once; ``verbose`` lowers the level to INFO."""
    level_name = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    if verbose:
        level = min(level, logging.INFO)
    if not getattr(configure_logging, "_done", False):
        logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")
        configure_logging._done = True  # type: ignore[attr-defined]
    logging.getLogger("build_library").setLevel(level)


__all__ = ["LOG_LEVEL_ENV", "configure_logging"]
