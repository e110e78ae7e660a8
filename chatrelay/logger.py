import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from chatrelay.config import settings

_print_level = "INFO"


def define_log_level(
    print_level: str = "INFO",
    logfile_level: str = "DEBUG",
    name: Optional[str] = None,
    log_dir: Optional[str] = None,
):
    """Adjust the log level to above level"""
    global _print_level
    _print_level = print_level

    _logger.remove()
    _logger.add(sys.stderr, level=print_level)

    if log_dir:
        current_date = datetime.now()
        formatted_date = current_date.strftime("%Y%m%d%H%M%S")
        log_name = f"{name}_{formatted_date}" if name else formatted_date
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        _logger.add(Path(log_dir) / f"{log_name}.log", level=logfile_level, rotation="10 MB")
    return _logger


logger = define_log_level(print_level=settings.log_level, log_dir=settings.log_dir)
