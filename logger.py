"""
Status Logger - tracks the status of recording and replay sessions.

The ``sequencer`` core logs through the standard ``logging`` module;
``StatusLogHandler`` routes those records into a ``StatusLogger`` so the
application keeps one bounded history and one optional daily log file.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

LogListener = Callable[["LogEntry"], None]


@dataclass
class LogEntry:
    """Represents a single log entry."""
    timestamp: datetime
    message: str
    level: str = "INFO"

    def __str__(self) -> str:
        time_str = self.timestamp.strftime("%H:%M:%S")
        return f"[{time_str}] {self.level}: {self.message}"

    def to_file_line(self) -> str:
        time_str = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        return f"{time_str} [{self.level}] {self.message}"


class StatusLogger:
    """
    Manages status updates and maintains a log history.

    Entries may arrive from the executor, the recorder and hotkey threads,
    so every mutation happens under a lock.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        log_dir: Optional[Union[str, Path]] = None,
        verbose: bool = False,
        file_prefix: str = "macro-sequencer",
    ):
        """
        Initialize the logger.

        Args:
            max_entries: Maximum number of log entries to keep in memory
            log_dir: Directory for the daily log file; None disables file logging
            verbose: Keep DEBUG entries instead of dropping them
            file_prefix: Log file name prefix, the date is appended
        """
        self._log_entries: List[LogEntry] = []
        self._max_entries = max_entries
        self._current_status = "Ready"
        self._listeners: List[LogListener] = []
        self._lock = threading.Lock()
        self._log_dir = Path(log_dir) if log_dir else None
        self._file_prefix = file_prefix
        self.verbose = verbose

    def log_debug(self, message: str) -> None:
        """Log a diagnostic message (kept only in verbose mode)."""
        self._add_entry(message, "DEBUG")

    def log_info(self, message: str) -> None:
        """Log an informational message."""
        self._add_entry(message, "INFO")

    def log_warning(self, message: str) -> None:
        """Log a warning message."""
        self._add_entry(message, "WARNING")

    def log_error(self, message: str) -> None:
        """Log an error message."""
        self._add_entry(message, "ERROR")

    def log(self, message: str, level: str = "INFO") -> None:
        level = level.upper()
        if level not in LEVELS:
            level = "INFO"
        self._add_entry(message, level)

    def update_status(self, status: str) -> None:
        """
        Update the current status.

        Args:
            status: The new status message
        """
        self._current_status = status
        self.log_info(status)

    def get_current_status(self) -> str:
        """Returns the current status message."""
        return self._current_status

    def add_listener(self, listener: LogListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: LogListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def get_recent_logs(self, count: int = 10) -> List[LogEntry]:
        """
        Get the most recent log entries.

        Args:
            count: Number of recent entries to return

        Returns:
            List of recent log entries
        """
        with self._lock:
            return self._log_entries[-count:]

    def get_all_logs(self) -> List[LogEntry]:
        """Returns all log entries."""
        with self._lock:
            return self._log_entries.copy()

    def clear_logs(self) -> None:
        """Clear all log entries."""
        with self._lock:
            self._log_entries.clear()
        self.log_info("Log history cleared")

    @property
    def log_file(self) -> Optional[Path]:
        """Today's log file, or None when file logging is off."""
        if self._log_dir is None:
            return None
        return self._log_dir / f"{self._file_prefix}_{datetime.now():%Y-%m-%d}.log"

    def _add_entry(self, message: str, level: str) -> None:
        if level == "DEBUG" and not self.verbose:
            return
        entry = LogEntry(timestamp=datetime.now(), message=message, level=level)

        with self._lock:
            self._log_entries.append(entry)
            # Trim old entries if we exceed max
            if len(self._log_entries) > self._max_entries:
                self._log_entries = self._log_entries[-self._max_entries:]
            self._append_to_file(entry)

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:  # pragma: no cover - listener bugs must not break logging
                pass

    def _append_to_file(self, entry: LogEntry) -> None:
        path = self.log_file
        if path is None:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(entry.to_file_line() + "\n")
        except OSError:
            # The in-memory history is still intact; drop file logging for this entry.
            pass

    def export_logs_to_file(self, filepath: Union[str, Path]) -> bool:
        """
        Export all logs to a text file.

        Args:
            filepath: Path where the log file should be saved

        Returns:
            bool: True if export was successful
        """
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                f.write("Macro Sequencer - Log Export\n")
                f.write(f"Generated: {datetime.now()}\n")
                f.write("=" * 50 + "\n\n")

                for entry in self.get_all_logs():
                    f.write(entry.to_file_line() + "\n")

            return True
        except OSError as e:
            self.log_error(f"Failed to export logs: {e}")
            return False


class StatusLogHandler(logging.Handler):
    """``logging`` handler that feeds records into a ``StatusLogger``."""

    def __init__(self, status_logger: StatusLogger, level: int = logging.DEBUG) -> None:
        super().__init__(level)
        self.status_logger = status_logger
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:  # pragma: no cover
            self.handleError(record)
            return
        if record.levelno >= logging.ERROR:
            level = "ERROR"
        elif record.levelno >= logging.WARNING:
            level = "WARNING"
        elif record.levelno >= logging.INFO:
            level = "INFO"
        else:
            level = "DEBUG"
        self.status_logger.log(message, level)


APP_LOGGERS = ("sequencer", "hotkey_manager", "settings_manager")


def attach_to_logging(status_logger: StatusLogger, logger_names: Iterable[str] = APP_LOGGERS) -> StatusLogHandler:
    """Route records of the named loggers (and their children) into ``status_logger``."""
    handler = StatusLogHandler(status_logger)
    for name in logger_names:
        target = logging.getLogger(name)
        target.addHandler(handler)
        target.setLevel(logging.DEBUG if status_logger.verbose else logging.INFO)
    return handler
