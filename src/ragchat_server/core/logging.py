"""
Logging Setup

Every component logs through a dotted ``ragchat.*`` logger obtained with
``logging.getLogger``; this module only installs the root handler once at
application startup.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the ``ragchat`` logger.

    Safe to call more than once (e.g. when tests build several apps).
    """
    root = logging.getLogger("ragchat")
    root.setLevel(level.upper())

    if not any(getattr(h, "_ragchat", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._ragchat = True  # type: ignore[attr-defined]
        root.addHandler(handler)
