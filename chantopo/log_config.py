"""Logging setup shared by the index, the exporters and the CLI."""

import logging
import sys

PACKAGE_LOGGER = "chantopo"

# Lazy neighbor fills can run on caller threads, so records carry the thread
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a chantopo module (pass ``__name__``)."""
    return logging.getLogger(name)


def set_global_log_level(level: int) -> None:
    """Route log records to stderr and set the level of every chantopo logger.

    Args:
        level: Logging level such as ``logging.DEBUG``; DEBUG adds cache fill
            and enumeration details.
    """
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
