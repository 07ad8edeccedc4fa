"""Logging setup for SimpleNet tools."""

from __future__ import annotations

import logging
from pathlib import Path

FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

logger = logging.getLogger("simplenet")


def configure_logging(level: int | str = logging.INFO, path: str | Path | None = None) -> logging.Logger:
    """Send ``simplenet`` log records to the console and, optionally, a file.

    Existing handlers are closed and removed first so repeated calls do not
    duplicate output.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(FORMAT)
    logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if path is not None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    return logger
