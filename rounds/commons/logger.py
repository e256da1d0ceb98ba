from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FILE = "rounds.log"
LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def daily_log_dir(root: str, when: Optional[datetime] = None) -> Path:
    """logs_root/YYYY/MM/DD, created on demand."""
    logdir = Path(root) / (when or datetime.now()).strftime("%Y/%m/%d")
    logdir.mkdir(parents=True, exist_ok=True)
    return logdir


def setup_logging(root: str, level: str = "INFO", console: bool = True):
    logfile = daily_log_dir(root) / LOG_FILE
    logger.remove()
    logger.add(
        str(logfile),
        format=LOG_FORMAT,
        rotation="00:00",
        retention="14 days",
        level=level.upper(),
        enqueue=True,
        backtrace=True,
        diagnose=False,  # sin valores de pacientes en los tracebacks
    )
    if console:
        logger.add(lambda m: print(m, end=""), format=LOG_FORMAT, level=level.upper())
    logger.debug(f"Log en {logfile}")
    return logger
