"""Shared type definitions for whalebuilder.

This module contains the immutable build configuration, the mode variant
dispatched by the CLI, and the fixed paths used inside the container.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

PROGRAM_NAME = "whalebuilder"

# Fixed locations inside the build container
CONTAINER_DEPS_DIR = PurePosixPath("/deps")
CONTAINER_OUTPUT_DIR = PurePosixPath("/output")
CONTAINER_SOURCE_DIR = PurePosixPath("/source-ro")
CONTAINER_PACKAGE_ROOT = PurePosixPath("/opt/whalebuilder")


class Verbosity(str, Enum):
    """How much of the log is mirrored to the terminal."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


@dataclass(frozen=True)
class BuildOptions:
    """Parsed command line, shared by outer and inner mode.

    Attributes:
        image: Container image to build in.
        engine: Container engine program (podman or docker).
        build_args: Arguments forwarded verbatim to dpkg-buildpackage.
        deps_dir: Folder of extra .deb build dependencies.
        output_dir: Folder receiving the build artifacts.
        save_name: Image name to commit the container to after the build.
        keep: Keep the container after the build.
        build: Run dpkg-buildpackage (False with --no-build).
        auto_deps: Derive build dependencies from debian/control.
        verbosity: Terminal verbosity.
        debug: Log every external command and the effective settings.
        entry: Run as the container entry point (inner mode).
    """

    image: str
    engine: str
    build_args: tuple[str, ...]
    deps_dir: Path | None = None
    output_dir: Path | None = None
    save_name: str | None = None
    keep: bool = False
    build: bool = True
    auto_deps: bool = True
    verbosity: Verbosity = Verbosity.NORMAL
    debug: bool = False
    entry: bool = False


@dataclass(frozen=True)
class OuterMode:
    """Run on the host: drive a container that runs InnerMode."""

    options: BuildOptions


@dataclass(frozen=True)
class InnerMode:
    """Run the actual build, inside the container or directly on the host."""

    options: BuildOptions


Mode = OuterMode | InnerMode


def select_mode(options: BuildOptions) -> Mode:
    """Pick the mode variant for a parsed command line.

    Args:
        options: Parsed build options.

    Returns:
        InnerMode when --entry was given, OuterMode otherwise.
    """
    if options.entry:
        return InnerMode(options)
    return OuterMode(options)


@dataclass
class Session:
    """Per-invocation scratch directory holding the debug log.

    Attributes:
        directory: Unique session directory, never removed automatically.
        log_path: Debug log inside the session directory.
    """

    directory: Path
    log_path: Path


__all__ = [
    "CONTAINER_DEPS_DIR",
    "CONTAINER_OUTPUT_DIR",
    "CONTAINER_PACKAGE_ROOT",
    "CONTAINER_SOURCE_DIR",
    "PROGRAM_NAME",
    "BuildOptions",
    "InnerMode",
    "Mode",
    "OuterMode",
    "Session",
    "Verbosity",
    "select_mode",
]
