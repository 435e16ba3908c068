"""Logging setup shared by the API and the scripts."""

import logging
from typing import Optional

from components.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once from settings."""
    level = (level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQL echo is controlled by DEBUG, keep the engine logger quiet otherwise
    if not get_settings().DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
