"""
Logging setup and fatal error reporting.

Fatal errors are reported once, as a single structured critical record,
and the caller exits. Nothing waits for an operator.
"""

import logging
import sys
from typing import Any

logger = logging.getLogger("kitsu_verify")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


def configure_logging(level: str = "info") -> None:
    """Install one stream handler on the root logger."""
    logging.basicConfig(
        level=_LEVELS.get(level.lower(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def report_fatal(exc: BaseException, **context: Any) -> None:
    """
    Log a fatal error with its context.

    Args:
        exc: The error that stops the process
        **context: Extra fields describing where it happened
    """
    fields = {"error_type": type(exc).__name__, "error": str(exc), **context}
    logger.critical(
        "Fatal error: %s",
        " ".join(f"{key}={value!r}" for key, value in fields.items()),
        exc_info=exc,
        extra={"fatal": fields},
    )
