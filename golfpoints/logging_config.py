"""Logging setup for season scoring sessions and recalculation runs."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import get_current_season

LOGGER_NAME = 'golfpoints'

# Worker thread names ("recalculate_0", "recalculation-ab12cd34") tie each
# tournament failure to the run that produced it.
FILE_FORMAT = '%(asctime)s %(levelname)-7s %(name)s [%(threadName)s] %(message)s'
CONSOLE_FORMAT = '%(levelname)s: %(message)s'
DEBUG_CONSOLE_FORMAT = '%(levelname)s %(name)s [%(threadName)s]: %(message)s'


def session_log_path(log_dir: Path, season: Optional[int] = None) -> Path:
    """Log file for one scorer session, e.g. logs/season_2025_20250412_180501.log."""
    season = season or get_current_season()
    return log_dir / f'season_{season}_{datetime.now():%Y%m%d_%H%M%S}.log'


def setup_logging(
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
) -> logging.Logger:
    """
    Configure the golfpoints logger.

    Calling it again replaces the previous handlers. The session file always
    records thread names; the console adds logger and thread names only at
    DEBUG level.

    Args:
        log_dir: Directory for session log files (default: ./logs)
        level: Logging level (default: INFO)
        log_to_file: Write a per-session file named after the season
        log_to_console: Log to stdout

    Returns:
        The golfpoints logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_to_file:
        log_dir = log_dir or Path('logs')
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(session_log_path(log_dir), encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            logging.Formatter(DEBUG_CONSOLE_FORMAT if level <= logging.DEBUG else CONSOLE_FORMAT)
        )
        logger.addHandler(console_handler)

    return logger
