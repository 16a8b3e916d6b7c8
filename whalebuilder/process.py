"""Running external commands.

Every collaborator (container engine, apt-get, mk-build-deps,
dpkg-buildpackage) is invoked through a ProcessRunner, so tests can swap
in a fake that records invocations instead of running them.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from whalebuilder.errors import CommandError

logger = logging.getLogger(__name__)


class ProcessRunner(Protocol):
    """Interface used by the orchestrators to run external programs."""

    def which(self, program: str) -> str | None:
        """Return the resolved path of a program, or None."""
        ...

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
    ) -> int:
        """Run a command to completion and return its exit code."""
        ...

    def tee(
        self,
        cmd: Sequence[str],
        echo: Callable[[str], None] | None = None,
    ) -> int:
        """Run a command, passing each output line to echo, and return its exit code."""
        ...


class SubprocessRunner:
    """ProcessRunner writing the combined output of every command to a log.

    Args:
        log_path: Log file the command output is appended to.
        env_override: Environment variables added for every command.
    """

    def __init__(
        self,
        log_path: Path,
        env_override: dict[str, str] | None = None,
    ) -> None:
        self.log_path = log_path
        self.env_override = dict(env_override or {})

    def _env(self) -> dict[str, str] | None:
        if not self.env_override:
            return None
        env = dict(os.environ)
        env.update(self.env_override)
        return env

    def which(self, program: str) -> str | None:
        return shutil.which(program)

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
    ) -> int:
        cmd_str = shlex.join(cmd)
        logger.debug("+ %s", cmd_str)

        try:
            with self.log_path.open("a") as log_file:
                result = subprocess.run(
                    list(cmd),
                    cwd=cwd,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    env=self._env(),
                    check=False,
                )
        except OSError as e:
            raise CommandError(f"Failed to execute '{cmd_str}': {e}", cmd) from e

        if check and result.returncode != 0:
            raise CommandError(
                f"Command '{cmd_str}' failed with exit code {result.returncode}. "
                f"See {self.log_path}",
                cmd,
                returncode=result.returncode,
            )
        return result.returncode

    def tee(
        self,
        cmd: Sequence[str],
        echo: Callable[[str], None] | None = None,
    ) -> int:
        cmd_str = shlex.join(cmd)
        logger.debug("+ %s", cmd_str)

        try:
            process = subprocess.Popen(
                list(cmd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=self._env(),
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise CommandError(f"Failed to execute '{cmd_str}': {e}", cmd) from e

        assert process.stdout is not None
        with self.log_path.open("a") as log_file, process.stdout:
            for line in process.stdout:
                log_file.write(line)
                log_file.flush()
                if echo is not None:
                    echo(line)
        return process.wait()


__all__ = ["ProcessRunner", "SubprocessRunner"]
