"""
Logging configuration shared by scripts and embedding applications.
"""

from __future__ import annotations

import logging
from typing import Optional

from murajaah.config import get_log_level

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger once.

    Args:
        level: Level name; defaults to the LOG_LEVEL environment variable
    """
    resolved = (level or get_log_level()).upper()
    logging.basicConfig(level=getattr(logging, resolved, logging.INFO), format=LOG_FORMAT)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
