import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

# 0: silent, 1: actions, 2: actions and details of each check
VERBOSITY_LEVELS = {
    1: 'INFO',
    2: 'DEBUG',
}


def setup_logging(verbosity: int = 2, log_dir: Optional[Path] = None, log_level: str = 'INFO'):
    logger.remove()
    level = VERBOSITY_LEVELS.get(min(verbosity, 2))
    if level:
        logger.add(sys.stderr,
                   format='<green>{time:YYYY-MM-DD HH:mm:ss}</green> | '
                          '<level>{level: <8}</level> | {message}',
                   level=level)
    if log_dir:
        if not os.path.isdir(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        format_string = '{time:HH:mm:ss} | {level} | {message}'
        logger.add(Path(log_dir) / 'mysql-backup.log',
                   format=format_string,
                   rotation='00:00',
                   retention='14 days',
                   level=log_level,
                   backtrace=True,
                   diagnose=True)
