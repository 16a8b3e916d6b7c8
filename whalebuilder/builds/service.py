"""Dispatch a parsed command line to outer or inner mode."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from whalebuilder.builds.inner import APT_ENV, run_inner
from whalebuilder.builds.outer import run_outer
from whalebuilder.config import Settings
from whalebuilder.process import ProcessRunner, SubprocessRunner
from whalebuilder.types import InnerMode, Mode, OuterMode, Session


def make_runner(mode: Mode, session: Session) -> SubprocessRunner:
    """Create the runner for a mode, logging into the session log.

    Inner mode runs apt-get non-interactively.
    """
    env = APT_ENV if isinstance(mode, InnerMode) else None
    return SubprocessRunner(session.log_path, env_override=env)


def execute(
    mode: Mode,
    session: Session,
    runner: ProcessRunner,
    settings: Settings,
    console: Console | None = None,
) -> Path | None:
    """Run the selected mode.

    Args:
        mode: OuterMode or InnerMode.
        session: Session directory and debug log.
        runner: Runner for external commands.
        settings: Effective settings.
        console: Terminal used by outer mode to echo container output.

    Returns:
        Directory holding the artifacts, or None if nothing was built.
    """
    if isinstance(mode, OuterMode):
        return run_outer(mode.options, session, runner, settings, console=console)
    if isinstance(mode, InnerMode):
        return run_inner(mode.options, session, runner)
    raise TypeError(f"Unknown mode: {mode!r}")


__all__ = ["execute", "make_runner"]
