"""Outer mode: drive one containerized build from the host.

This module handles:
- Translating the host command line into the entry-point command line
- Composing the ``<engine> run`` arguments (mounts, workdir, name, image)
- Running the container and teeing its output into the debug log
- Saving/removing the container and copying artifacts to --output
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Callable, Sequence
from pathlib import Path, PurePosixPath

from rich.console import Console

import whalebuilder
from whalebuilder.builds.artifacts import (
    copy_directory_contents,
    describe_artifacts,
    find_artifacts,
)
from whalebuilder.config import Settings
from whalebuilder.container import ContainerEngine
from whalebuilder.errors import ArtifactCopyError, ContainerError
from whalebuilder.process import ProcessRunner
from whalebuilder.types import (
    CONTAINER_DEPS_DIR,
    CONTAINER_OUTPUT_DIR,
    CONTAINER_PACKAGE_ROOT,
    CONTAINER_SOURCE_DIR,
    PROGRAM_NAME,
    BuildOptions,
    Session,
    Verbosity,
)

logger = logging.getLogger(__name__)

BOOTSTRAP_LOG = CONTAINER_OUTPUT_DIR / "bootstrap.log"

# Runs as the container command; "$@" holds the entry-point arguments
BOOTSTRAP_TEMPLATE = (
    'if ! python3 -c "import typer, rich, pydantic_settings" >/dev/null 2>&1; then '
    "{{ apt-get update && DEBIAN_FRONTEND=noninteractive apt-get install -y "
    "--no-install-recommends {packages}; }} >>{log} 2>&1 "
    '|| {{ echo "{prog}: ERROR: Could not install {packages}"; exit 1; }}; '
    'fi; exec python3 -m {prog} "$@"'
)


def package_dir() -> Path:
    """Return the directory of the installed whalebuilder package."""
    return Path(whalebuilder.__file__).resolve().parent


def container_name_for(settings: Settings, pid: int | None = None) -> str:
    """Return the container name for this process, e.g. ``whale_1234``."""
    return f"{settings.container_prefix}_{os.getpid() if pid is None else pid}"


def compose_bootstrap_script(packages: Sequence[str]) -> str:
    """Compose the shell snippet that starts the entry point in the container.

    Args:
        packages: Debian packages providing python3 and the libraries.

    Returns:
        Script for ``sh -c``.
    """
    return BOOTSTRAP_TEMPLATE.format(
        packages=shlex.join(packages),
        log=BOOTSTRAP_LOG,
        prog=PROGRAM_NAME,
    )


def compose_entry_args(options: BuildOptions) -> list[str]:
    """Translate host options into the in-container entry-point arguments.

    Host paths become the fixed mount points; verbosity and skip flags
    pass through unchanged. The build arguments follow ``--``.

    Args:
        options: Host build options.

    Returns:
        Arguments for ``python3 -m whalebuilder``.
    """
    args: list[str] = []
    if options.deps_dir is not None:
        args += ["--deps", str(CONTAINER_DEPS_DIR)]
    if options.debug:
        args.append("--debug")
    if not options.build:
        args.append("--no-build")
    if not options.auto_deps:
        args.append("--no-auto-deps")
    args += ["--output", str(CONTAINER_OUTPUT_DIR)]
    if options.verbosity is Verbosity.QUIET:
        args.append("--quiet")
    elif options.verbosity is Verbosity.VERBOSE:
        args.append("--verbose")
    args.append("--entry")
    args += ["--", *options.build_args]
    return args


def compose_run_args(
    options: BuildOptions,
    *,
    session_dir: Path,
    work_dir: Path,
    container_name: str,
    bootstrap_packages: Sequence[str],
    source_package_dir: Path | None = None,
) -> list[str]:
    """Compose the arguments following ``<engine> run``.

    Args:
        options: Host build options.
        session_dir: Session directory, mounted read-write as the output.
        work_dir: Project directory; its parent is mounted read-only.
        container_name: Unique container name.
        bootstrap_packages: Packages installed if the image lacks python3.
        source_package_dir: whalebuilder package to mount (installed one if None).

    Returns:
        Argument list for ContainerEngine.run.
    """
    if source_package_dir is None:
        source_package_dir = package_dir()
    mounted_package = CONTAINER_PACKAGE_ROOT / PROGRAM_NAME

    args: list[str] = []
    args += ["-v", f"{source_package_dir}:{mounted_package}:ro"]
    args += ["-v", f"{work_dir.parent}:{CONTAINER_SOURCE_DIR}:ro"]
    if options.deps_dir is not None:
        args += ["-v", f"{options.deps_dir}:{CONTAINER_DEPS_DIR}"]
    args += ["-v", f"{session_dir}:{CONTAINER_OUTPUT_DIR}"]
    args += ["--workdir", str(CONTAINER_SOURCE_DIR / PurePosixPath(work_dir.name))]
    args += ["--env", f"PYTHONPATH={CONTAINER_PACKAGE_ROOT}"]
    args += ["--name", container_name]
    args.append(options.image)
    args += ["sh", "-c", compose_bootstrap_script(bootstrap_packages), PROGRAM_NAME]
    args += compose_entry_args(options)
    return args


def _console_echo(console: Console) -> Callable[[str], None]:
    def echo(line: str) -> None:
        console.file.write(line)
        console.file.flush()

    return echo


def run_outer(
    options: BuildOptions,
    session: Session,
    runner: ProcessRunner,
    settings: Settings,
    console: Console | None = None,
    work_dir: Path | None = None,
) -> Path | None:
    """Build the current project inside a container.

    Args:
        options: Host build options.
        session: Session directory and debug log.
        runner: Runner for the container engine.
        settings: Effective settings.
        console: Terminal for container output in normal verbosity.
        work_dir: Project directory (current directory if None).

    Returns:
        Directory holding the artifacts, or None with --no-build.

    Raises:
        EngineNotFoundError: If the engine is not installed.
        ContainerError: If the container fails or cannot be removed.
        ArtifactCopyError: If artifacts cannot be copied to --output.
    """
    engine = ContainerEngine(options.engine, runner)
    engine.ensure_available()

    if work_dir is None:
        work_dir = Path.cwd()
    container_name = container_name_for(settings)
    args = compose_run_args(
        options,
        session_dir=session.directory,
        work_dir=work_dir,
        container_name=container_name,
        bootstrap_packages=settings.bootstrap_packages,
    )

    # Verbose output reaches the terminal through the log follower
    echo = None
    if options.verbosity is Verbosity.NORMAL and console is not None:
        echo = _console_echo(console)

    logger.info("Launching container using image '%s'", options.image)
    exit_code = engine.run(args, echo=echo)
    if exit_code != 0:
        raise ContainerError(
            f"Failure at image run (exit code {exit_code}). "
            f"See logs at {session.directory}\n"
            f"Container '{container_name}' retained for inspection.",
            container_name,
        )

    if options.save_name:
        logger.info("Saving container as image '%s'", options.save_name)
        if engine.commit(container_name, options.save_name) != 0:
            logger.warning(
                "Could not save container '%s' as image '%s'. See %s",
                container_name,
                options.save_name,
                session.log_path,
            )

    if not options.keep:
        logger.info("Removing container")
        if engine.remove(container_name) != 0:
            raise ContainerError(
                f"Failure removing container {container_name}. "
                f"See {session.log_path}",
                container_name,
            )
    else:
        logger.info("Container %s kept.", container_name)

    if not options.build:
        return None

    artifacts = find_artifacts(session.directory)
    for label in describe_artifacts(artifacts):
        logger.debug("Artifact: %s", label)

    if options.output_dir is not None:
        logger.info("Copying output files to '%s'", options.output_dir)
        try:
            copy_directory_contents(session.directory, options.output_dir)
        except OSError as e:
            raise ArtifactCopyError(
                f"Failure copying build artifacts: {e}. "
                f"See {session.log_path}\n"
                f"Build files remain at '{session.directory}'."
            ) from e
        return options.output_dir

    logger.info("Build output stored at '%s'.", session.directory)
    return session.directory


__all__ = [
    "BOOTSTRAP_TEMPLATE",
    "compose_bootstrap_script",
    "compose_entry_args",
    "compose_run_args",
    "container_name_for",
    "package_dir",
    "run_outer",
]
