"""Thin wrapper over the podman/docker command line."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from whalebuilder.errors import EngineNotFoundError
from whalebuilder.process import ProcessRunner

logger = logging.getLogger(__name__)


class ContainerEngine:
    """Container engine program driven through a ProcessRunner.

    Only run, commit and container rm are needed; images are pulled by
    the engine on demand.
    """

    def __init__(self, program: str, runner: ProcessRunner) -> None:
        self.program = program
        self.runner = runner

    def ensure_available(self) -> str:
        """Check that the engine binary resolves on PATH.

        Returns:
            Resolved path of the engine binary.

        Raises:
            EngineNotFoundError: If the binary is not installed.
        """
        path = self.runner.which(self.program)
        if not path:
            raise EngineNotFoundError(self.program)
        logger.debug("Using container engine %s", path)
        return path

    def run(
        self,
        args: Sequence[str],
        echo: Callable[[str], None] | None = None,
    ) -> int:
        """Run ``<engine> run <args>`` in the foreground, teeing its output."""
        return self.runner.tee([self.program, "run", *args], echo=echo)

    def commit(self, container_name: str, image_name: str) -> int:
        """Save a container's filesystem as a new image."""
        return self.runner.run(
            [self.program, "commit", container_name, image_name], check=False
        )

    def remove(self, container_name: str) -> int:
        """Remove a stopped container."""
        return self.runner.run(
            [self.program, "container", "rm", container_name], check=False
        )


__all__ = ["ContainerEngine"]
