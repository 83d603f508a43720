import datetime
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import termcolor

__appname__ = "varhighlighter"

LOG_DIR_ENV = "VARHIGHLIGHTER_LOG_DIR"


def log_file_path(day: Optional[datetime.date] = None) -> Path:
    """One log file per day, in $VARHIGHLIGHTER_LOG_DIR or ~/varhighlighter_logs."""
    logs_dir = os.environ.get(LOG_DIR_ENV) or Path.home() / f"{__appname__}_logs"
    stamp = (day or datetime.date.today()).strftime("%Y-%m-%d")
    return Path(logs_dir).expanduser() / f"{__appname__}_{stamp}.log"


if os.name == "nt":  # Windows
    import colorama
    colorama.init()


COLORS = {
    "WARNING": "yellow",
    "INFO": "white",
    "DEBUG": "blue",
    "CRITICAL": "red",
    "ERROR": "red",
}


class ColoredFormatter(logging.Formatter):
    def __init__(self, fmt, use_color=True):
        logging.Formatter.__init__(self, fmt)
        self.use_color = use_color

    def format(self, record):
        levelname = record.levelname
        message = record.getMessage()
        if self.use_color and levelname in COLORS:

            def colored(text):
                return termcolor.colored(
                    text,
                    color=COLORS[levelname],
                    attrs={"bold": True},
                )

            record.levelname2 = colored("{:<7}".format(record.levelname))
            record.message2 = colored(message)

            asctime2 = datetime.datetime.fromtimestamp(record.created)
            record.asctime2 = termcolor.colored(asctime2, color="green")

            record.module2 = termcolor.colored(record.module, color="cyan")
            record.funcName2 = termcolor.colored(record.funcName, color="cyan")
            record.lineno2 = termcolor.colored(record.lineno, color="cyan")
        else:
            record.levelname2 = "{:<7}".format(record.levelname)
            record.message2 = message
            record.module2 = record.module
            record.funcName2 = record.funcName
            record.lineno2 = record.lineno
        return logging.Formatter.format(self, record)


def set_log_level(level: int | str) -> None:
    """Change the level of the package logger (and its handlers)."""
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


logger = logging.getLogger(__appname__)
logger.setLevel(logging.INFO)

if not logger.handlers:
    # Configure logging to write to stderr
    stream_handler = logging.StreamHandler(sys.stderr)
    handler_format = ColoredFormatter(
        "%(asctime)s [%(levelname2)s] %(module2)s:%(funcName2)s:%(lineno2)s"
        "- %(message2)s"
    )
    stream_handler.setFormatter(handler_format)
    logger.addHandler(stream_handler)

    # Configure logging to write to a log file
    try:
        log_path = log_file_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        file_handler = None
    if file_handler is not None:
        file_format = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(module)s:%(funcName)s:%(lineno)d - %(message)s"
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)
