"""
Logging utilities for gridbook.

Library modules log through ``logging.getLogger(__name__)`` and never install
handlers themselves; applications call ``configure_logging`` to see them.

``OperationLogger`` is a separate, file-based progress log for long edit
sessions: it records when an operation started, intermediate messages with
the time elapsed so far, and the total time when it ended.
"""

import datetime
import logging
import os
import threading
import time
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO, format_string: Optional[str] = None) -> None:
    """Attach a console handler to the ``gridbook`` logger.

    Args:
        level: Log level (int or name such as "DEBUG")
        format_string: Custom format string (uses DEFAULT_FORMAT if None)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    package_logger = logging.getLogger("gridbook")
    package_logger.setLevel(level)

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    package_logger.addHandler(handler)


def _format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}m{secs:02d}s"


class OperationLogger:
    """Append-only progress log with elapsed-time stamps.

    Usage:
        >>> op_log = OperationLogger("logs/run.log")
        >>> op_log.start("import")
        >>> op_log.log("sheet 1 done")
        >>> op_log.end("import")

    Each line starts with a ``[YYYY/MM/DD HH:MM:SS]`` timestamp. A failed write is
    reported as a warning and does not interrupt the operation being logged.
    """

    DEFAULT_LABEL = "operation"

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        """Initialize the logger and create the log directory if needed.

        Raises:
            ValueError: If path is blank
        """
        if path is None or not str(path).strip():
            raise ValueError("A log path is required")

        self.path = os.path.abspath(os.fspath(path))
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self._lock = threading.Lock()
        self._started_at: Optional[float] = None

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def start(self, label: Optional[str] = None) -> None:
        """Begin timing.

        Raises:
            RuntimeError: If the logger is already started
        """
        if self.started:
            raise RuntimeError("OperationLogger has already been started")

        self._started_at = time.perf_counter()
        self._write(f"{self._prefix()} start : {label or self.DEFAULT_LABEL}")

    def log(self, message: str) -> None:
        """Write ``message`` with the time elapsed since ``start``.

        Raises:
            RuntimeError: If the logger has not been started
        """
        self._require_started()
        self._write(f"{self._prefix()} elapsed {_format_elapsed(self.elapsed())} : {message}")

    def end(self, label: Optional[str] = None) -> None:
        """Write the end line and the total time, then stop timing.

        Raises:
            RuntimeError: If the logger has not been started
        """
        self._require_started()
        total = self.elapsed()
        self._started_at = None

        self._write(f"{self._prefix()} end : {label or self.DEFAULT_LABEL}")
        self._write(f"{self._prefix()} total : {_format_elapsed(total)}")

    def elapsed(self) -> float:
        """Seconds since ``start`` (0.0 when not started)."""
        if self._started_at is None:
            return 0.0
        return time.perf_counter() - self._started_at

    def _require_started(self) -> None:
        if not self.started:
            raise RuntimeError("OperationLogger has not been started")

    @staticmethod
    def _prefix() -> str:
        return datetime.datetime.now().strftime("[%Y/%m/%d %H:%M:%S]")

    def _write(self, line: str) -> None:
        try:
            with self._lock:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError as e:
            logger.warning("Could not write to %s: %s", self.path, e)
