"""Logging for plotted.

The ``plotted`` logger writes plain messages to stderr and a detailed record
of every run to ``<data>/logs/plotted-<timestamp>.log``. HTTP and OAuth
libraries log to the file only.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers whose records only go to the run log
FILE_ONLY_LOGGERS = ("stravalib", "urllib3")

_CONSOLE_HANDLER = "plotted-console"
_FILE_HANDLER = "plotted-file"

logger = logging.getLogger("plotted")


def console_level(verbose: int = 0, quiet: bool = False) -> int:
    """Map the ``-v`` count and ``-q`` flag to a console log level.

    ``-q`` wins over ``-v``; a single ``-v`` already shows DEBUG records.
    """
    if quiet:
        return logging.WARNING
    return logging.DEBUG if verbose > 0 else logging.INFO


def _detach(target: logging.Logger, name: str) -> None:
    for handler in list(target.handlers):
        if handler.get_name() == name:
            target.removeHandler(handler)
            handler.close()


def setup_logging(logs_dir: Path, verbose: int = 0, quiet: bool = False) -> Path:
    """Attach console and run-log handlers.

    Safe to call more than once: handlers from an earlier call are replaced,
    not stacked.

    Args:
        logs_dir: Directory for run logs; created if missing.
        verbose: Number of ``-v`` flags.
        quiet: Only warnings and errors on the console.

    Returns:
        Path of this run's log file.
    """
    _detach(logger, _CONSOLE_HANDLER)
    _detach(logger, _FILE_HANDLER)
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.set_name(_CONSOLE_HANDLER)
    console.setLevel(console_level(verbose, quiet))
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"plotted-{datetime.now():%Y%m%dT%H%M%S}.log"

    run_log = logging.FileHandler(log_file, encoding="utf-8")
    run_log.set_name(_FILE_HANDLER)
    run_log.setLevel(logging.DEBUG)
    run_log.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    logger.addHandler(run_log)

    for name in FILE_ONLY_LOGGERS:
        library = logging.getLogger(name)
        _detach(library, _FILE_HANDLER)
        library.setLevel(logging.DEBUG)
        library.addHandler(run_log)

    logger.debug("Run log: %s", log_file)
    return log_file


def get_logger(name: str = "plotted") -> logging.Logger:
    return logging.getLogger(name)
