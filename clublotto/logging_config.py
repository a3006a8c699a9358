"""Logging setup for the operator scripts."""

from __future__ import annotations

import logging
from typing import Union


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Configure root logging with a single-line format.

    Library modules only ever call ``logging.getLogger(__name__)``; the
    handlers are installed here by whichever script is the entry point.
    """

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # Statement echo and connection-pool chatter drown out the draw log.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
