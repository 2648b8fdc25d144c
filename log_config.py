"""Console logging for the compass CLI.

Modules log through ``logging.getLogger(__name__)``; only the entry point
calls setup_logging(). Records go to stderr so stdout stays free for the
bearing and the replayed render payloads.
"""

import logging
import sys

import colorlog

# Chatty libraries that log per request
_QUIET_LOGGERS = ("urllib3", "pyproj")


def setup_logging(logger_name=None, level="INFO", color="white"):
    """Attach a coloured stderr handler to *logger_name* (root by default).

    Raises:
        ValueError: if *level* is not a logging level name.
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    logger = logging.getLogger(logger_name)
    logger.setLevel(numeric_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        log_colors={
            "DEBUG": "cyan",
            "INFO": color,
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
    ))
    logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
    return logger
