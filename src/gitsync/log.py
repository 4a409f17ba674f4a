"""Run log and logging configuration.

A :class:`RunLog` records what one sync run did as timestamped, leveled
entries for display or export.  Every entry is also forwarded to the
``gitsync`` stdlib logger.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

LOGGER_NAME = "gitsync"
RUN_LOGGER_NAME = "gitsync.run"


class LogLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    def __str__(self) -> str:          # noqa: D105
        return self.value

    @property
    def logging_level(self) -> int:
        return _STDLIB_LEVELS[self]


_STDLIB_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: LogLevel
    message: str

    def format(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] {self.message}"


@dataclass
class RunLog:
    """Entries of one run, in the order they were added.

    Attributes:
        on_entry: Called with each new entry (live display).
        logger: Stdlib logger the entries are forwarded to.
    """
    on_entry: Callable[[LogEntry], None] | None = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(RUN_LOGGER_NAME))
    entries: list[LogEntry] = field(default_factory=list)

    def add(self, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        entry = LogEntry(datetime.now(), LogLevel(level), message)
        self.entries.append(entry)
        self.logger.log(entry.level.logging_level, message)
        if self.on_entry is not None:
            self.on_entry(entry)
        return entry

    def info(self, message: str) -> LogEntry:
        return self.add(message, LogLevel.INFO)

    def success(self, message: str) -> LogEntry:
        return self.add(message, LogLevel.SUCCESS)

    def warning(self, message: str) -> LogEntry:
        return self.add(message, LogLevel.WARNING)

    def error(self, message: str) -> LogEntry:
        return self.add(message, LogLevel.ERROR)

    def by_level(self, level: LogLevel) -> list[LogEntry]:
        return [e for e in self.entries if e.level is level]

    def export_text(self) -> str:
        """All entries as ``[HH:MM:SS] message`` lines."""
        return "\n".join(e.format() for e in self.entries)

    def clear(self) -> None:
        self.entries.clear()

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def setup_logging(
    level: int = logging.WARNING,
    *,
    log_file: str | Path | None = None,
    console: bool = True,
    console_run_log: bool = True,
) -> logging.Logger:
    """Configure the ``gitsync`` logger with console and optional file output.

    With *console_run_log* off, run-log entries are kept out of the console
    handler (for callers that print them already).
    """
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(min(level, logging.INFO) if log_file else level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setLevel(min(level, logging.INFO))
        fh.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(fh)

    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(level)
        ch.setFormatter(logging.Formatter("[%(levelname)-7s] %(message)s"))
        if not console_run_log:
            ch.addFilter(lambda record: not record.name.startswith(RUN_LOGGER_NAME))
        root.addHandler(ch)

    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return root
