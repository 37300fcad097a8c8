"""Thread-safe component logger that displays messages and appends them to a daily CSV file."""

from __future__ import annotations

import csv
import json
import os
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

_HEADER = ["Time", "Component", "Level", "Message", "ID"]


class Level(str, Enum):
    INFO = "INFO"
    DEBUG = "DEBUG"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"


@dataclass
class LogConfig:
    log_dir: str


def log_config() -> LogConfig:
    """Read the log directory from GOMCP_LOG_DIR, falling back to the working directory."""
    log_dir = os.environ.get("GOMCP_LOG_DIR")
    if log_dir is None:
        log_dir = os.getcwd()
    return LogConfig(log_dir=log_dir)


def current_date() -> str:
    """Today's date as dd-mm-yyyy."""
    now = datetime.now()
    return f"{now.day:02d}-{now.month:02d}-{now.year}"


def _create_log_dir(path: Path) -> None:
    if not path.exists():
        path.mkdir()


def _create_log_file(path: Path) -> None:
    if path.exists():
        return
    with path.open("w", newline="", encoding="utf-8") as handle:
        csv.writer(handle).writerow(_HEADER)


def _quote(msg: str) -> str:
    needs = not msg or any(c in ' ="\\' or not c.isprintable() for c in msg)
    return json.dumps(msg, ensure_ascii=False) if needs else msg


class Logger:
    """Logger for one component; rows are Time, Component, Level, Message, ID."""

    def __init__(self, component: str, component_id: str, log_dir: str | os.PathLike | None = None):
        directory = Path(log_dir) if log_dir is not None else Path(log_config().log_dir)
        _create_log_dir(directory)
        self.component = component
        self.component_id = component_id
        self.logfile = directory / f"gomcp-log-{current_date()}.csv"
        _create_log_file(self.logfile)
        self._lock = threading.Lock()

    def _display(self, level: Level, msg: str) -> None:
        stamp = datetime.now().astimezone().isoformat(timespec="milliseconds")
        sys.stdout.write(f"time={stamp} level={level.value} msg={_quote(msg)}\n")
        sys.stdout.flush()

    def show(self, msg: str) -> None:
        """Display a message without writing it to the log file."""
        self._display(Level.INFO, msg)

    def info(self, msg: str) -> None:
        self._display(Level.INFO, msg)
        self.log(Level.INFO, msg)

    def debug(self, msg: str) -> None:
        # Debug messages are below the display threshold; they go to the file only.
        self.log(Level.DEBUG, msg)

    def warn(self, msg: str) -> None:
        self._display(Level.WARN, msg)
        self.log(Level.WARN, msg)

    def error(self, msg: str) -> None:
        self._display(Level.ERROR, msg)
        self.log(Level.ERROR, msg)

    def log(self, level: Level | str, msg: str) -> None:
        """Append an entry to the CSV file without displaying it."""
        level_text = level.value if isinstance(level, Level) else level
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        with self._lock, self.logfile.open("a", newline="", encoding="utf-8") as handle:
            csv.writer(handle).writerow(
                [timestamp, self.component, level_text, msg, self.component_id]
            )