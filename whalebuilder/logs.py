"""Session directory, logging and terminal mirroring.

This module handles:
- Creating the per-invocation session directory and its debug log
- Formatting every message as a single ``whalebuilder: ...`` line
- Mirroring messages to the terminal according to verbosity
- Following the whole log file to the terminal in verbose mode
"""

from __future__ import annotations

import logging
import tempfile
import threading
import time
from pathlib import Path
from types import TracebackType

from rich.console import Console

from whalebuilder.types import PROGRAM_NAME, Session, Verbosity

LOG_NAME = f"{PROGRAM_NAME}.log"

# Polling interval of the log follower when no new output is available
FOLLOW_POLL_INTERVAL = 0.1


def create_session(tmp_dir: Path | None = None) -> Session:
    """Create a uniquely named session directory.

    Args:
        tmp_dir: Parent directory (system temp dir if None).

    Returns:
        Session with an empty debug log.
    """
    if tmp_dir is not None:
        tmp_dir.mkdir(parents=True, exist_ok=True)
    directory = Path(tempfile.mkdtemp(prefix=f"{PROGRAM_NAME}_", dir=tmp_dir))
    log_path = directory / LOG_NAME
    log_path.touch()
    return Session(directory=directory, log_path=log_path)


class MessageFormatter(logging.Formatter):
    """Format records as ``whalebuilder: [LEVEL: ]message``."""

    def __init__(self) -> None:
        super().__init__(f"{PROGRAM_NAME}: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if record.levelno >= logging.WARNING:
            prefix = f"{PROGRAM_NAME}: "
            text = f"{prefix}{record.levelname}: {text[len(prefix):]}"
        return text


class ConsoleHandler(logging.Handler):
    """Print formatted records on a Rich console, one line each."""

    STYLES = {
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "bold red",
    }

    def __init__(self, console: Console, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.console.print(
                self.format(record),
                style=self.STYLES.get(record.levelno),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
        except Exception:
            self.handleError(record)


def configure_logging(
    log_path: Path,
    verbosity: Verbosity,
    debug: bool = False,
    console: Console | None = None,
) -> logging.Logger:
    """Route the package logger to the debug log and, maybe, the terminal.

    Replaces handlers installed by a previous call, so this can run once
    per invocation.

    Args:
        log_path: Debug log appended to by every message.
        verbosity: Only NORMAL mirrors messages through the console
            handler; VERBOSE relies on a LogFollower instead.
        debug: Write DEBUG records (commands, settings) to the log.
        console: Console for normal mode.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PROGRAM_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    file_handler.setFormatter(MessageFormatter())
    logger.addHandler(file_handler)

    if verbosity is Verbosity.NORMAL and console is not None:
        console_handler = ConsoleHandler(console)
        console_handler.setFormatter(MessageFormatter())
        logger.addHandler(console_handler)

    return logger


class LogFollower:
    """Mirror everything appended to a log file onto a console.

    Runs in a background thread until stop() is called. Stopping waits
    ``grace`` seconds for late writes, drains the rest of the file and
    joins the thread.
    """

    def __init__(
        self,
        log_path: Path,
        console: Console,
        grace: float = 0.5,
        poll_interval: float = FOLLOW_POLL_INTERVAL,
    ) -> None:
        self.log_path = log_path
        self.console = console
        self.grace = grace
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._follow, name=f"{PROGRAM_NAME}-log-follower", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        time.sleep(self.grace)
        self._stop.set()
        self._thread.join()
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _emit(self, chunk: str) -> None:
        self.console.file.write(chunk)
        self.console.file.flush()

    def _follow(self) -> None:
        with self.log_path.open("r", encoding="utf-8", errors="replace") as log:
            while not self._stop.is_set():
                chunk = log.read()
                if chunk:
                    self._emit(chunk)
                else:
                    self._stop.wait(self.poll_interval)
            rest = log.read()
            if rest:
                self._emit(rest)

    def __enter__(self) -> LogFollower:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()


__all__ = [
    "LOG_NAME",
    "ConsoleHandler",
    "LogFollower",
    "MessageFormatter",
    "configure_logging",
    "create_session",
]
