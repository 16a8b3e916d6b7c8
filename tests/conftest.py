"""Shared fixtures for whalebuilder tests."""

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from whalebuilder.config import Settings
from whalebuilder.errors import CommandError
from whalebuilder.types import PROGRAM_NAME, BuildOptions, Session


class FakeRunner:
    """ProcessRunner recording invocations instead of running them.

    Args:
        which_result: Value returned by which().
        returncodes: Exit codes keyed by command prefix (space-joined).
        tee_output: Lines fed to the echo callback by tee().
        on_run: Hook called with (cmd, cwd) for every run().
    """

    def __init__(
        self,
        which_result: str | None = "/usr/bin/podman",
        returncodes: dict[str, int] | None = None,
        tee_output: Sequence[str] = (),
        on_run: Callable[[list[str], Path | None], None] | None = None,
    ) -> None:
        self.which_result = which_result
        self.returncodes = dict(returncodes or {})
        self.tee_output = list(tee_output)
        self.on_run = on_run
        self.calls: list[tuple[str, list[str], Path | None]] = []

    def _code(self, cmd: list[str]) -> int:
        joined = " ".join(cmd)
        for prefix, code in self.returncodes.items():
            if joined.startswith(prefix):
                return code
        return 0

    def which(self, program: str) -> str | None:
        self.calls.append(("which", [program], None))
        return self.which_result

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
    ) -> int:
        cmd = list(cmd)
        self.calls.append(("run", cmd, cwd))
        if self.on_run is not None:
            self.on_run(cmd, cwd)
        code = self._code(cmd)
        if check and code != 0:
            raise CommandError(f"{cmd[0]} failed", cmd, returncode=code)
        return code

    def tee(
        self,
        cmd: Sequence[str],
        echo: Callable[[str], None] | None = None,
    ) -> int:
        cmd = list(cmd)
        self.calls.append(("tee", cmd, None))
        if echo is not None:
            for line in self.tee_output:
                echo(line)
        return self._code(cmd)

    def commands(self, kind: str = "run") -> list[list[str]]:
        """Return recorded commands of one kind."""
        return [cmd for k, cmd, _ in self.calls if k == kind]


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by configure_logging between tests."""
    yield
    logger = logging.getLogger(PROGRAM_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Create a FakeRunner that succeeds at everything."""
    return FakeRunner()


@pytest.fixture
def settings() -> Settings:
    """Create settings with defaults only."""
    return Settings(_env_file=None)


@pytest.fixture
def options() -> BuildOptions:
    """Create default outer-mode build options."""
    return BuildOptions(
        image="debian:sid-slim",
        engine="podman",
        build_args=("-i", "-I", "-us", "-uc"),
    )


@pytest.fixture
def session(tmp_path: Path) -> Session:
    """Create a session directory with an empty log."""
    directory = tmp_path / "session"
    directory.mkdir()
    log_path = directory / f"{PROGRAM_NAME}.log"
    log_path.touch()
    return Session(directory=directory, log_path=log_path)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a Debian source project with an orig tarball beside it."""
    src = tmp_path / "src"
    project_dir = src / "hello-1.0"
    (project_dir / "debian").mkdir(parents=True)
    (project_dir / "debian" / "control").write_text(
        "Source: hello\nBuild-Depends: debhelper-compat (= 13)\n"
    )
    (project_dir / "debian" / "rules").write_text("#!/usr/bin/make -f\n")
    (project_dir / "hello.c").write_text("int main(void) { return 0; }\n")
    (src / "hello_1.0.orig.tar.gz").write_bytes(b"tarball")
    (src / "unrelated.txt").write_text("not copied")
    return project_dir
