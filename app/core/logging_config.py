"""
Logging setup.

Every module logs through logging.getLogger(__name__); this only
configures the root handler once at startup.
"""

import logging

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: int = None) -> None:
    """Configure root logging. DEBUG when settings.debug is on."""
    if level is None:
        level = logging.DEBUG if get_settings().debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQL echo is too chatty for the app log
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
