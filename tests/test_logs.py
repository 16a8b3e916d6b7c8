"""Tests for logs module."""

import io
import logging

from rich.console import Console

from whalebuilder.logs import (
    LOG_NAME,
    LogFollower,
    MessageFormatter,
    configure_logging,
    create_session,
)
from whalebuilder.types import Verbosity


def make_console() -> tuple[Console, io.StringIO]:
    """Create a console writing into a buffer."""
    buffer = io.StringIO()
    return Console(file=buffer, force_terminal=False, color_system=None), buffer


def make_record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("whalebuilder.test", level, __file__, 1, msg, None, None)


class TestCreateSession:
    """Tests for create_session function."""

    def test_creates_directory_and_log(self, tmp_path):
        """Should create a prefixed directory holding an empty log."""
        session = create_session(tmp_path)

        assert session.directory.parent == tmp_path
        assert session.directory.name.startswith("whalebuilder_")
        assert session.log_path == session.directory / LOG_NAME
        assert session.log_path.read_text() == ""

    def test_unique(self, tmp_path):
        """Should never reuse a directory."""
        first = create_session(tmp_path)
        second = create_session(tmp_path)
        assert first.directory != second.directory

    def test_creates_parent(self, tmp_path):
        """Should create a missing parent directory."""
        session = create_session(tmp_path / "a" / "b")
        assert session.directory.is_dir()


class TestMessageFormatter:
    """Tests for MessageFormatter class."""

    def test_info(self):
        """Info lines should only carry the program prefix."""
        text = MessageFormatter().format(make_record(logging.INFO, "Removing container"))
        assert text == "whalebuilder: Removing container"

    def test_warning(self):
        """Warnings should be labelled."""
        text = MessageFormatter().format(
            make_record(logging.WARNING, "Build finished with error 2")
        )
        assert text == "whalebuilder: WARNING: Build finished with error 2"

    def test_error(self):
        """Errors should be labelled."""
        text = MessageFormatter().format(make_record(logging.ERROR, "boom"))
        assert text == "whalebuilder: ERROR: boom"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_writes_to_log_file(self, tmp_path):
        """Messages should always reach the log file."""
        log_path = tmp_path / LOG_NAME
        logger = configure_logging(log_path, Verbosity.QUIET)

        logging.getLogger("whalebuilder.builds.outer").info("Removing container")
        for handler in logger.handlers:
            handler.flush()

        assert log_path.read_text() == "whalebuilder: Removing container\n"

    def test_normal_mirrors_to_console(self, tmp_path):
        """Normal verbosity should print messages on the console."""
        console, buffer = make_console()
        configure_logging(tmp_path / LOG_NAME, Verbosity.NORMAL, console=console)

        logging.getLogger("whalebuilder.x").info("Building package")

        assert buffer.getvalue() == "whalebuilder: Building package\n"

    def test_quiet_and_verbose_do_not_print(self, tmp_path):
        """Quiet and verbose modes should not attach a console handler."""
        for verbosity in (Verbosity.QUIET, Verbosity.VERBOSE):
            console, buffer = make_console()
            configure_logging(tmp_path / LOG_NAME, verbosity, console=console)
            logging.getLogger("whalebuilder.x").info("hidden")
            assert buffer.getvalue() == ""

    def test_debug_level(self, tmp_path):
        """Debug records should only be logged with debug enabled."""
        log_path = tmp_path / LOG_NAME
        configure_logging(log_path, Verbosity.QUIET, debug=False)
        logging.getLogger("whalebuilder.x").debug("+ apt-get update")
        assert "apt-get" not in log_path.read_text()

        configure_logging(log_path, Verbosity.QUIET, debug=True)
        logging.getLogger("whalebuilder.x").debug("+ apt-get update")
        assert "whalebuilder: + apt-get update" in log_path.read_text()

    def test_reconfigure_replaces_handlers(self, tmp_path):
        """Calling twice should not duplicate lines."""
        log_path = tmp_path / LOG_NAME
        configure_logging(log_path, Verbosity.QUIET)
        logger = configure_logging(log_path, Verbosity.QUIET)

        logger.info("once")

        assert log_path.read_text().count("once") == 1
        assert len(logger.handlers) == 1


class TestLogFollower:
    """Tests for LogFollower class."""

    def test_mirrors_existing_and_new_content(self, tmp_path):
        """Should copy everything written to the log, including late lines."""
        log_path = tmp_path / LOG_NAME
        log_path.write_text("first\n")
        console, buffer = make_console()

        follower = LogFollower(log_path, console, grace=0, poll_interval=0.01)
        with follower:
            assert follower.running
            with log_path.open("a") as log:
                log.write("second\n")

        assert not follower.running
        assert buffer.getvalue() == "first\nsecond\n"

    def test_stop_without_start(self, tmp_path):
        """Stopping an idle follower should do nothing."""
        log_path = tmp_path / LOG_NAME
        log_path.touch()
        console, buffer = make_console()

        LogFollower(log_path, console, grace=0).stop()

        assert buffer.getvalue() == ""

    def test_stops_on_exception(self, tmp_path):
        """The follower should be joined when the block raises."""
        log_path = tmp_path / LOG_NAME
        log_path.write_text("before failure\n")
        console, buffer = make_console()
        follower = LogFollower(log_path, console, grace=0, poll_interval=0.01)

        try:
            with follower:
                raise KeyboardInterrupt
        except KeyboardInterrupt:
            pass

        assert not follower.running
        assert "before failure" in buffer.getvalue()
