"""Source tree copies and build artifact collection.

This module handles:
- Copying the read-only source tree into a writable work directory
- Copying upstream orig tarballs next to it
- Discovering and classifying dpkg-buildpackage outputs
- Copying artifacts and whole directories to an output folder
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

# Files produced by dpkg-buildpackage next to the source directory
ARTIFACT_PATTERNS = ["*.deb", "*.buildinfo", "*.changes", "*.dsc", "*.debian.*"]

# Upstream tarballs expected beside a debian/ packaging directory
ORIG_TARBALL_PATTERN = "*orig*"

# Suffix patterns for classification (lowercase)
BINARY_PATTERNS = [".deb", ".udeb", ".ddeb"]
SOURCE_PATTERNS = [".dsc", ".debian.tar.", ".diff.gz", ".orig.tar."]
CHANGES_PATTERNS = [".changes"]
BUILDINFO_PATTERNS = [".buildinfo"]


def classify_artifact(filename: str) -> str:
    """Classify an artifact by its filename pattern.

    Args:
        filename: The artifact filename.

    Returns:
        Artifact kind (binary, source, changes, buildinfo, other).
    """
    filename_lower = filename.lower()

    if any(filename_lower.endswith(p) for p in BINARY_PATTERNS):
        return "binary"
    if any(p in filename_lower for p in SOURCE_PATTERNS):
        return "source"
    if any(filename_lower.endswith(p) for p in CHANGES_PATTERNS):
        return "changes"
    if any(filename_lower.endswith(p) for p in BUILDINFO_PATTERNS):
        return "buildinfo"

    return "other"


def find_artifacts(directory: Path) -> list[Path]:
    """Find build artifacts directly inside a directory.

    Args:
        directory: Directory dpkg-buildpackage wrote its outputs to.

    Returns:
        Sorted, de-duplicated list of matching files.
    """
    found: set[Path] = set()
    for pattern in ARTIFACT_PATTERNS:
        found.update(p for p in directory.glob(pattern) if p.is_file())
    return sorted(found)


def copy_source_tree(source_dir: Path, parent_dir: Path) -> Path:
    """Copy a source tree into parent_dir, keeping its name.

    Symlinks and file metadata are preserved, like ``cp -a``.

    Args:
        source_dir: Read-only project directory.
        parent_dir: Writable directory to copy into.

    Returns:
        Path of the writable copy.
    """
    work_dir = parent_dir / source_dir.name
    shutil.copytree(source_dir, work_dir, symlinks=True)
    logger.debug("Copied %s to %s", source_dir, work_dir)
    return work_dir


def copy_orig_tarballs(source_parent: Path, dest_dir: Path) -> list[Path]:
    """Copy upstream orig tarballs from source_parent into dest_dir.

    Returns:
        Paths of the copies (may be empty).
    """
    copied: list[Path] = []
    for path in sorted(source_parent.glob(ORIG_TARBALL_PATTERN)):
        if not path.is_file():
            continue
        target = dest_dir / path.name
        shutil.copy2(path, target)
        logger.debug("'%s' -> '%s'", path, target)
        copied.append(target)
    return copied


def copy_artifacts(artifacts: list[Path], dest_dir: Path) -> list[Path]:
    """Copy files into dest_dir, overwriting existing ones.

    Raises:
        OSError: If a file cannot be copied.
    """
    copied: list[Path] = []
    for path in artifacts:
        target = dest_dir / path.name
        shutil.copy2(path, target)
        logger.debug("'%s' -> '%s'", path, target)
        copied.append(target)
    return copied


def copy_directory_contents(source_dir: Path, dest_dir: Path) -> list[Path]:
    """Copy every entry of source_dir into dest_dir, like ``cp -af src/* dest/``.

    The source directory is left untouched.

    Raises:
        OSError: If an entry cannot be copied.
    """
    copied: list[Path] = []
    for entry in sorted(source_dir.iterdir()):
        target = dest_dir / entry.name
        if entry.is_dir() and not entry.is_symlink():
            shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
        else:
            shutil.copy2(entry, target, follow_symlinks=False)
        logger.debug("'%s' -> '%s'", entry, target)
        copied.append(target)
    return copied


def describe_artifacts(artifacts: list[Path]) -> list[str]:
    """Render one ``name (kind)`` label per artifact for log output."""
    return [f"{p.name} ({classify_artifact(p.name)})" for p in artifacts]


__all__ = [
    "ARTIFACT_PATTERNS",
    "ORIG_TARBALL_PATTERN",
    "classify_artifact",
    "copy_artifacts",
    "copy_directory_contents",
    "copy_orig_tarballs",
    "copy_source_tree",
    "describe_artifacts",
    "find_artifacts",
]
