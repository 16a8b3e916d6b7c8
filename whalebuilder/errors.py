"""Exceptions raised by whalebuilder.

Every fatal condition is a WhalebuilderError; the CLI logs it and exits
with its exit_code. A failing dpkg-buildpackage is deliberately not an
error.
"""

from __future__ import annotations

from collections.abc import Sequence


class WhalebuilderError(Exception):
    """Base class for fatal whalebuilder errors."""

    def __init__(
        self,
        message: str,
        exit_code: int = 1,
        code: str = "error",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.code = code


class EngineNotFoundError(WhalebuilderError):
    """Raised when the container engine binary cannot be found."""

    def __init__(self, program: str) -> None:
        super().__init__(
            f"Could not find '{program}'. Not installed?",
            code="engine_not_found",
        )
        self.program = program


class ContainerError(WhalebuilderError):
    """Raised when launching or removing the build container fails."""

    def __init__(self, message: str, container_name: str) -> None:
        super().__init__(message, code="container_error")
        self.container_name = container_name


class DependencyError(WhalebuilderError):
    """Raised when build dependencies cannot be determined."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="dependency_error")


class CommandError(WhalebuilderError):
    """Raised when an external command fails or cannot be started."""

    def __init__(
        self,
        message: str,
        command: Sequence[str],
        returncode: int | None = None,
    ) -> None:
        super().__init__(message, code="command_error")
        self.command = list(command)
        self.returncode = returncode


class ArtifactCopyError(WhalebuilderError):
    """Raised when build artifacts cannot be copied to their destination."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="artifact_copy_error")


__all__ = [
    "ArtifactCopyError",
    "CommandError",
    "ContainerError",
    "DependencyError",
    "EngineNotFoundError",
    "WhalebuilderError",
]
