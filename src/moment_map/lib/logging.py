"""Logging setup for moment-map.

Console messages go to stderr; a per-run log file under the configured log
directory receives everything, including urllib3's request lines for
backend calls.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from moment_map.config import Config

logger = logging.getLogger("moment_map")

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers attached to third-party loggers by the last setup_logging() call
_foreign_handlers: list[tuple[logging.Logger, logging.Handler]] = []


def _close_handlers() -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    while _foreign_handlers:
        owner, handler = _foreign_handlers.pop()
        owner.removeHandler(handler)
        handler.close()


def _run_log_path(log_dir: Path) -> Path:
    # ISO 8601 basic format keeps filenames sortable
    return log_dir / f"moment-map-{datetime.now():%Y%m%dT%H%M%S}.log"


def setup_logging(
    config: Config | None = None,
    log_dir: Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet: bool = False,
) -> logging.Logger:
    """Configure the moment_map logger for one CLI run.

    Calling it again replaces (and closes) the handlers of the previous
    call.

    Args:
        config: Application config, for its log directory.
        log_dir: Explicit log directory; overrides the config.
        console_level: Level for stderr output.
        file_level: Level for the log file.
        quiet: Only warnings and errors reach the console.

    Returns:
        The moment_map logger.
    """
    _close_handlers()
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.WARNING if quiet else console_level)
    console.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console)

    if log_dir is None:
        log_dir = config.log.directory if config is not None else Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = _run_log_path(log_dir)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    logger.addHandler(file_handler)

    # Backend HTTP traffic is file-only
    urllib3_logger = logging.getLogger("urllib3")
    urllib3_logger.setLevel(logging.DEBUG)
    urllib3_logger.addHandler(file_handler)
    _foreign_handlers.append((urllib3_logger, file_handler))

    logger.debug("Logging to %s", log_file)
    return logger
