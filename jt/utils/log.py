"""
Logging utilities for the jt toolkit.

Every module asks `get_logger(__name__)` for its logger:
- console output goes through Rich
- `jt replay` also appends JSON lines to `replay.log`, in $JT_LOG_DIR or
  the working directory
"""

import logging
import os
import sys
import json
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

# commands whose runs also get a JSON log file
FILE_LOGGED_COMMANDS = ("replay",)

# `extra=` keys copied into JSON records when present
JSON_EXTRA_FIELDS = ("activity", "trip_id", "reason", "fix_ts")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record, with the known `extra=` fields flattened in.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level":     record.levelname,
            "logger":    record.name,
            "message":   record.getMessage(),
        }
        for key in JSON_EXTRA_FIELDS:
            if key in record.__dict__:
                log_record[key] = record.__dict__[key]
        if record.exc_info:
            log_record["exc"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def _current_command(argv: list[str]) -> Optional[str]:
    return next((a for a in argv[1:] if not a.startswith("-")), None)


def log_file_path(command: str) -> Path:
    return Path(os.environ.get("JT_LOG_DIR") or Path.cwd()) / f"{command}.log"


def get_logger(name: str, level: int | str = logging.INFO) -> logging.Logger:
    """
    Return a configured logger for the given name.

    Parameters
    ----------
    name
        Logger name (typically __name__).
    level
        Log level (int or string), defaults to INFO.

    Returns
    -------
    logging.Logger
        Logger with a Rich console handler, plus the JSON file handler
        when the running command is listed in FILE_LOGGED_COMMANDS.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    console_handler = RichHandler(rich_tracebacks=True, show_path=False)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    command = _current_command(sys.argv)
    if command in FILE_LOGGED_COMMANDS:
        file_handler = logging.FileHandler(log_file_path(command), mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    return logger


def set_level(level: int | str) -> None:
    """
    Change the level of every logger already created under the `jt` namespace.
    """
    for name, obj in logging.Logger.manager.loggerDict.items():
        if not name.startswith("jt") or not isinstance(obj, logging.Logger):
            continue
        obj.setLevel(level)
        for handler in obj.handlers:
            handler.setLevel(level)
