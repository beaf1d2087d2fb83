"""
Logging helpers.

Every module asks for a named logger via ``get_logger``. Records go to the
console (INFO and above) and to per-level files that roll over at midnight:
``YYYYMMDD_debug.log``, ``YYYYMMDD_info.log`` and ``YYYYMMDD_error.log``.
"""
import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_DIR = Path(os.getenv("LOG_DIR", Path(__file__).parent.parent.parent / "runtime" / "logs"))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] [%(filename)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_loggers = {}


class DailyRotatingFileHandler(TimedRotatingFileHandler):
    """
    Rotates at midnight and names each file after its day: YYYYMMDD_level.log
    """
    def __init__(self, log_dir, level_name, when='midnight', interval=1, backup_count=30):
        self.log_dir = Path(log_dir)
        self.level_name = level_name.lower()

        filename = self._generate_filename()

        super().__init__(
            filename=str(filename),
            when=when,
            interval=interval,
            backupCount=backup_count,
            encoding='utf-8',
            delay=True
        )

    def _generate_filename(self):
        date_str = datetime.now().strftime("%Y%m%d")
        return self.log_dir / f"{date_str}_{self.level_name}.log"

    def doRollover(self):
        """
        Switch to the file for the new day instead of renaming the old one.
        """
        if self.stream:
            self.stream.close()
            self.stream = None

        self.baseFilename = str(self._generate_filename())
        self.rolloverAt = self.computeRollover(int(datetime.now().timestamp()))

        if not self.delay:
            self.stream = self._open()


def _only(levelno):
    return lambda record: record.levelno == levelno


def setup_logger(name="taskmate", level=logging.DEBUG):
    """
    Build (once) and return the logger called ``name``.

    Args:
        name: logger name
        level: minimum level handled by the logger

    Returns:
        logging.Logger
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    levels = {
        'debug': logging.DEBUG,
        'info': logging.INFO,
        'error': logging.ERROR,
    }

    for level_name, level_value in levels.items():
        file_handler = DailyRotatingFileHandler(
            log_dir=LOG_DIR,
            level_name=level_name,
            when='midnight',
            interval=1,
            backup_count=30
        )
        file_handler.setLevel(level_value)
        file_handler.setFormatter(formatter)

        # debug and info files hold exactly their level, error holds ERROR and CRITICAL
        if level_name == 'error':
            file_handler.addFilter(lambda record: record.levelno >= logging.ERROR)
        else:
            file_handler.addFilter(_only(level_value))

        logger.addHandler(file_handler)

    _loggers[name] = logger

    return logger


default_logger = setup_logger("taskmate")

logger = default_logger


def get_logger(name="taskmate"):
    """
    Return the logger called ``name``, creating it on first use.
    """
    if name in _loggers:
        return _loggers[name]
    return setup_logger(name)
