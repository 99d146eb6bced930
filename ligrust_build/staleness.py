"""Timestamp-based staleness detection.

This module handles:
- Enumerating the declared inputs of a build (manifest, lock file, sources)
- Deciding whether a file target is current with respect to its inputs

The decision is a pure function of an mtime clock. The default clock reads
real file modification times; tests inject a synthetic one.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path

from ligrust_build.config import ProjectLayout
from ligrust_build.types import TargetState

logger = logging.getLogger(__name__)

# Returns the modification time of a path, or None if it does not exist
MtimeFn = Callable[[Path], float | None]

# Sets the modification time of an existing path
TouchFn = Callable[[Path, float], None]


def file_mtime(path: Path) -> float | None:
    """Return the modification time of a file.

    Args:
        path: File to inspect.

    Returns:
        mtime in seconds since the epoch, or None if the file is absent.
    """
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None


def set_file_mtime(path: Path, stamp: float) -> None:
    """Set both access and modification time of a file to ``stamp``."""
    os.utime(path, (stamp, stamp))


def enumerate_sources(source_dir: Path) -> list[Path]:
    """List every regular file under a source tree.

    The tree is walked on every call; results are never cached. Symbolic
    links are not regular files and are skipped.

    Args:
        source_dir: Root of the source tree.

    Returns:
        Sorted list of file paths. Empty if the directory does not exist.
    """
    if not source_dir.is_dir():
        logger.debug("Source directory does not exist: %s", source_dir)
        return []
    return sorted(
        p for p in source_dir.rglob("*") if p.is_file() and not p.is_symlink()
    )


def collect_inputs(layout: ProjectLayout) -> list[Path]:
    """Collect the declared inputs of a cargo build.

    Args:
        layout: Project layout.

    Returns:
        Manifest, lock file and every file in the source tree.
    """
    inputs = [layout.manifest, layout.lock_file]
    inputs.extend(enumerate_sources(layout.source_dir))
    return inputs


def newest_input_mtime(
    inputs: Iterable[Path],
    mtime: MtimeFn = file_mtime,
) -> float | None:
    """Return the newest mtime among inputs that exist.

    Args:
        inputs: Input paths.
        mtime: Clock used to read timestamps.

    Returns:
        The maximum mtime, or None if no input exists.
    """
    newest: float | None = None
    for path in inputs:
        value = mtime(path)
        if value is None:
            continue
        if newest is None or value > newest:
            newest = value
    return newest


def is_current(
    target: Path,
    inputs: Iterable[Path],
    mtime: MtimeFn = file_mtime,
) -> bool:
    """Decide whether a target is up to date.

    A target is stale if it does not exist or if any input is strictly
    newer than it. Equal timestamps count as current.

    Args:
        target: Target file.
        inputs: Declared inputs of the target.
        mtime: Clock used to read timestamps.

    Returns:
        True if no rebuild is needed.
    """
    target_mtime = mtime(target)
    if target_mtime is None:
        logger.debug("Target %s does not exist", target)
        return False

    newest = newest_input_mtime(inputs, mtime)
    if newest is not None and newest > target_mtime:
        logger.debug(
            "Target %s is stale (newest input %.6f > target %.6f)",
            target,
            newest,
            target_mtime,
        )
        return False
    return True


def target_state(
    target: Path,
    inputs: Iterable[Path],
    mtime: MtimeFn = file_mtime,
) -> TargetState:
    """Return the state of a target as a TargetState."""
    if is_current(target, inputs, mtime):
        return TargetState.CURRENT
    return TargetState.STALE


__all__ = [
    "MtimeFn",
    "TouchFn",
    "collect_inputs",
    "enumerate_sources",
    "file_mtime",
    "is_current",
    "newest_input_mtime",
    "set_file_mtime",
    "target_state",
]
