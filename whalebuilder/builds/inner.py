"""Inner mode: install build dependencies and run dpkg-buildpackage.

Runs as the container entry point, or directly on the host with --entry
for debugging. The project directory is treated as read-only; all work
happens in a private copy.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from whalebuilder.builds.artifacts import (
    copy_artifacts,
    copy_orig_tarballs,
    copy_source_tree,
    describe_artifacts,
    find_artifacts,
)
from whalebuilder.errors import ArtifactCopyError, DependencyError
from whalebuilder.process import ProcessRunner
from whalebuilder.types import BuildOptions, Session

logger = logging.getLogger(__name__)

# Environment for every command run in inner mode
APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}

APT_INSTALL = ["apt-get", "install", "-y", "--no-install-recommends"]
RESOLVER_OPTIONS = ["-o", "Debug::pkgProblemResolver=yes"]

BUILD_TOOLCHAIN = ["dpkg-dev"]
AUTO_DEPS_TOOLCHAIN = ["devscripts", "equivs"]

CONTROL_FILE = Path("debian") / "control"
BUILD_LOG_NAME = "build.log"

# mk-build-deps would otherwise prompt before installing
MK_BUILD_DEPS_TOOL = " ".join(
    ["apt-get", "-y", *RESOLVER_OPTIONS, "--no-install-recommends"]
)


def prepare_workspace(source_dir: Path, scratch_root: Path | None = None) -> Path:
    """Make a writable copy of the project under a fresh temp directory.

    Orig tarballs beside the project are copied into the temp directory,
    where dpkg-source expects them.

    Args:
        source_dir: Read-only project directory.
        scratch_root: Parent of the temp directory (system default if None).

    Returns:
        The writable project copy.

    Raises:
        ArtifactCopyError: If the project cannot be copied.
    """
    logger.info("Copying source files")
    try:
        parent_dir = Path(tempfile.mkdtemp(dir=scratch_root))
        work_dir = copy_source_tree(source_dir, parent_dir)
        copy_orig_tarballs(source_dir.parent, parent_dir)
    except OSError as e:
        raise ArtifactCopyError(f"Failure copying source files: {e}") from e
    return work_dir


def install_build_toolchain(runner: ProcessRunner) -> None:
    """Install the packages needed to run dpkg-buildpackage."""
    logger.info("Installing dpkg-buildpackage")
    runner.run(["apt-get", "update"])
    runner.run([*APT_INSTALL, *BUILD_TOOLCHAIN])


def install_auto_deps(
    runner: ProcessRunner,
    work_dir: Path,
    scratch_root: Path | None = None,
) -> None:
    """Install the build dependencies declared in debian/control.

    Raises:
        DependencyError: If the control file is missing.
    """
    control_file = work_dir / CONTROL_FILE
    if not control_file.is_file():
        raise DependencyError(f"Could not find {control_file}")

    logger.info("Gathering build dependencies from '%s'", CONTROL_FILE)
    runner.run([*APT_INSTALL, *AUTO_DEPS_TOOLCHAIN])

    # mk-build-deps leaves its generated package in the current directory
    auto_dep_dir = Path(tempfile.mkdtemp(dir=scratch_root))
    runner.run(
        [
            "mk-build-deps",
            "--install",
            "--tool",
            MK_BUILD_DEPS_TOOL,
            str(control_file),
        ],
        cwd=auto_dep_dir,
    )


def install_custom_deps(runner: ProcessRunner, deps_dir: Path) -> list[Path]:
    """Install every .deb found directly in deps_dir.

    Returns:
        The packages handed to apt-get (empty if there were none).
    """
    packages = sorted(p for p in deps_dir.glob("*.deb") if p.is_file())
    if not packages:
        logger.warning("No .deb packages found in '%s'", deps_dir)
        return []

    logger.info("Installing build dependencies")
    runner.run([*APT_INSTALL, *RESOLVER_OPTIONS, *(str(p) for p in packages)])
    return packages


def run_dpkg_buildpackage(
    runner: ProcessRunner,
    work_dir: Path,
    build_args: tuple[str, ...] | list[str],
) -> int:
    """Run dpkg-buildpackage in work_dir.

    A failing build is only a warning so that whatever it produced can
    still be collected.

    Returns:
        dpkg-buildpackage exit code.
    """
    logger.info("Building package")
    exit_code = runner.run(
        ["dpkg-buildpackage", *build_args], cwd=work_dir, check=False
    )
    if exit_code == 0:
        logger.info("Build finished successfully")
    else:
        logger.warning("Build finished with error %d", exit_code)
    return exit_code


def collect_outputs(
    work_dir: Path,
    output_dir: Path,
    session: Session,
    include_artifacts: bool = True,
) -> list[Path]:
    """Copy build artifacts and the debug log to output_dir.

    Args:
        work_dir: Writable project copy; artifacts sit in its parent.
        output_dir: Destination folder.
        session: Session whose log is exported as build.log.
        include_artifacts: False with --no-build (only the log is copied).

    Returns:
        Copied artifacts, not counting the log.

    Raises:
        ArtifactCopyError: If a file cannot be copied.
    """
    copied: list[Path] = []
    if include_artifacts:
        logger.info("Collecting build outputs")
        artifacts = find_artifacts(work_dir.parent)
        if not artifacts:
            logger.warning("No build artifacts found in '%s'", work_dir.parent)
        try:
            copied = copy_artifacts(artifacts, output_dir)
        except OSError as e:
            raise ArtifactCopyError(
                f"Failure copying build artifacts: {e}. "
                f"Build files remain at '{work_dir.parent}'."
            ) from e
        for label in describe_artifacts(copied):
            logger.info("  %s", label)

    try:
        shutil.copyfile(session.log_path, output_dir / BUILD_LOG_NAME)
    except OSError as e:
        raise ArtifactCopyError(f"Failure exporting build log: {e}") from e
    return copied


def run_inner(
    options: BuildOptions,
    session: Session,
    runner: ProcessRunner,
    source_dir: Path | None = None,
    scratch_root: Path | None = None,
) -> Path:
    """Install dependencies, build, and collect the outputs.

    Args:
        options: Entry-point build options.
        session: Session directory and debug log.
        runner: Runner for apt-get, mk-build-deps and dpkg-buildpackage.
        source_dir: Read-only project directory (current directory if None).
        scratch_root: Parent for temp directories (system default if None).

    Returns:
        Directory holding the artifacts.

    Raises:
        DependencyError: If debian/control is missing with auto deps.
        CommandError: If a package manager command fails.
        ArtifactCopyError: If the outputs cannot be copied.
    """
    if source_dir is None:
        source_dir = Path.cwd()

    work_dir = prepare_workspace(source_dir, scratch_root)
    install_build_toolchain(runner)

    if options.auto_deps:
        install_auto_deps(runner, work_dir, scratch_root)

    if options.deps_dir is not None:
        install_custom_deps(runner, options.deps_dir)

    if options.build:
        run_dpkg_buildpackage(runner, work_dir, options.build_args)

    if options.output_dir is None:
        logger.info("Build artifacts remain at '%s'.", work_dir.parent)
        return work_dir.parent

    collect_outputs(
        work_dir, options.output_dir, session, include_artifacts=options.build
    )
    return options.output_dir


__all__ = [
    "APT_ENV",
    "collect_outputs",
    "install_auto_deps",
    "install_build_toolchain",
    "install_custom_deps",
    "prepare_workspace",
    "run_dpkg_buildpackage",
    "run_inner",
]
