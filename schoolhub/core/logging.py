"""Process-wide logging setup.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides the format and level once, when the application is created.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    # SQL echo is noisy at INFO; keep it behind an explicit DEBUG level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
