"""Logging setup for applications embedding the login flow."""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# One INFO line per HTTP request or served callback
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def configure_logging(level: str = "INFO", library_level: str = "WARNING") -> None:
    """Configure logging for a login session.

    The ``authflow`` loggers follow ``level``. The HTTP client and the
    callback server's access log are held at ``library_level`` unless
    ``level`` is DEBUG, so a normal run shows flow milestones only.
    """
    level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger("authflow").setLevel(level)

    if level != "DEBUG":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(library_level.upper())
