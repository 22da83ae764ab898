"""Logging setup for the operations utilities."""

from __future__ import annotations

import logging
import sys


def configure_logging(debug: bool = False) -> None:
    """Route log records to standard output.

    Diagnostics such as ``wrote file: ...`` are emitted verbatim, so the
    format carries the message only unless ``debug`` is set.
    """
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s" if debug else "%(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("hishel").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
