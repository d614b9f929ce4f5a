# src/infrabase/logging.py
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from tqdm import tqdm

LOGGER_NAME = "infrabase"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class TqdmStreamHandler(logging.StreamHandler):
    """Route records through tqdm.write (on stderr) so they don't tear a running bar."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
            self.flush()
        except Exception:
            self.handleError(record)


def _console_handler(use_tqdm_handler: bool) -> logging.Handler:
    # stdout carries the rendered configs; console logging stays on stderr
    if use_tqdm_handler:
        return TqdmStreamHandler(stream=sys.stderr)
    return logging.StreamHandler(stream=sys.stderr)


def setup_logging(
    *,
    level: str = "WARNING",
    quiet: bool = False,
    log_file: Optional[str] = None,
    use_tqdm_handler: bool = True,
) -> logging.Logger:
    """(Re)configure the "infrabase" logger. Safe to call more than once per process."""
    level = level.upper()
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level)
    log.propagate = False
    for h in list(log.handlers):
        log.removeHandler(h)
        h.close()

    handlers = []
    if not quiet:
        handlers.append(_console_handler(use_tqdm_handler))
    if log_file:
        handlers.append(RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8"))

    fmt = logging.Formatter(_FORMAT)
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(fmt)
        log.addHandler(h)
    return log


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)
