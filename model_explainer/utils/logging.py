"""Logger namespace and handler setup for Model Explainer.

Library code only creates loggers below ``model_explainer``; handlers are
attached by ``setup_logging``, which the CLI calls once per invocation.
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from .exceptions import InvalidConfigError

ROOT_LOGGER_NAME = "model_explainer"

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(process)d %(name)s %(levelname)s %(message)s"

# Handlers installed by setup_logging carry this attribute so reruns replace
# only their own handlers
_OWNED = "_model_explainer_handler"


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise InvalidConfigError(f"Unknown log level: {level!r}")
    return resolved


def _owned_handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    setattr(handler, _OWNED, True)
    return handler


def setup_logging(
    level: Union[str, int] = "INFO", log_file: Optional[str] = None, console: bool = True
) -> logging.Logger:
    """
    Attach console and file handlers to the package logger.

    Calling it again closes and replaces the handlers from the previous call,
    so repeated CLI invocations in one process do not duplicate output.
    Handlers added by the host application are left alone.

    Args:
        level: Level name or number for the package logger and the console
        log_file: Optional file receiving every record down to DEBUG
        console: Whether to write records to stderr

    Returns:
        The package logger
    """
    level = _resolve_level(level)
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG if log_file else level)

    # stdout carries the command's tables
    if console:
        logger.addHandler(_owned_handler(logging.StreamHandler(sys.stderr), level, CONSOLE_FORMAT))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _owned_handler(logging.FileHandler(log_path, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)
        )

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``name`` as a logger under the package namespace."""
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


@contextmanager
def log_elapsed(logger: logging.Logger, label: str) -> Iterator[None]:
    """Log how long the enclosed computation took, at INFO."""
    start = time.perf_counter()
    yield
    logger.info(f"{label} finished in {time.perf_counter() - start:.3f}s")


class LoggerMixin:
    """Gives each computer a logger named after its module and class."""

    @property
    def logger(self) -> logging.Logger:
        cls = type(self)
        return get_logger(f"{cls.__module__}.{cls.__name__}")
