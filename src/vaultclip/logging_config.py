"""Logging setup for the ``vaultclip`` logger namespace."""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .models.config import ClipperSettings

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Set up logging configuration for vaultclip.

    Records go to stderr; stdout is reserved for the rendered note so it
    can be piped into a file or another tool.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging output (parents are created)
        format_string: Optional custom format string for log messages
        force: If True, replace handlers installed by an earlier call

    Returns:
        The ``vaultclip`` logger
    """
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("vaultclip")
    logger.setLevel(numeric_level)

    if force or not logger.handlers:
        logger.handlers.clear()

        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path, encoding="utf-8"))

        for handler in handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    # Records stop here; the root logger may belong to a host application
    logger.propagate = False

    return logger


def setup_logging_from_settings(
    settings: "ClipperSettings",
    verbose: bool = False,
    quiet: bool = False,
) -> logging.Logger:
    """Configure logging from settings; ``verbose``/``quiet`` override the level."""
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "ERROR"
    else:
        level = settings.log_level
    return setup_logging(level, settings.log_file)
