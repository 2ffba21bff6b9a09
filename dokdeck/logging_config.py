"""
Logging setup for the client core.
"""

import logging
import sys
from typing import Optional

from dokdeck.config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Send log records to stdout and apply the configured level."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("dokdeck").setLevel(level)
