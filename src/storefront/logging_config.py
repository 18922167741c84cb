"""Logging setup for the storefront CLI and server."""

import logging
import os
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
HANDLER_NAME = "storefront"


def configure_logging(level: str | None = None) -> None:
    """
    Attach one stream handler to the ``storefront`` logger.

    The level comes from ``level``, then ``STOREFRONT_LOG_LEVEL``, then INFO.
    Calling this again only updates the level.
    """
    name = (level or os.environ.get("STOREFRONT_LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    root = logging.getLogger("storefront")
    root.setLevel(resolved)
    if not any(h.get_name() == HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.set_name(HANDLER_NAME)
        root.addHandler(handler)
