# fastcoinc/logger.py

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

# console lines carry the "%"-prefixed diagnostics as they are, the log file
# adds a timestamp so several runs can share one file
CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self):
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def setup_logger(name: str = "fastcoinc", level: Union[str, int] = "INFO",
                 file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger for the diagnostic stream.

    Calling it again changes the level of the existing handlers and adds a
    file handler for a log file not seen before.
    """
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    console = [h for h in logger.handlers if isinstance(h, _StderrHandler)]
    if not console:
        ch = _StderrHandler()
        ch.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(ch)

    if file:
        path = Path(os.path.abspath(file))
        known = {Path(h.baseFilename) for h in logger.handlers if isinstance(h, logging.FileHandler)}
        if path not in known:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(path, encoding="utf-8")
            fh.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
            logger.addHandler(fh)

    for h in logger.handlers:
        h.setLevel(level)
    return logger
