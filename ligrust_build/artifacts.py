"""Artifact handling: delete-on-error, install and uninstall.

This module handles:
- Removing an artifact that a failed or interrupted build left behind
- Keeping a freshly built artifact at least as new as its inputs
- Installing the release binary atomically with a fixed mode
- Removing the installed binary idempotently
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ligrust_build.config import InstallConfig
from ligrust_build.staleness import TouchFn, set_file_mtime

logger = logging.getLogger(__name__)


class InstallError(Exception):
    """Raised when installing or uninstalling an artifact fails."""

    def __init__(self, message: str, code: str = "install_failed") -> None:
        super().__init__(message)
        self.code = code


def _fingerprint(path: Path) -> tuple[int, int, int] | None:
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return (st.st_ino, st.st_size, st.st_mtime_ns)


@contextmanager
def delete_on_error(artifact: Path) -> Iterator[None]:
    """Remove an artifact changed by a step that then failed.

    If the body raises (including KeyboardInterrupt) and the artifact was
    created or modified while it ran, the artifact is deleted before the
    exception propagates. An artifact the failed step never touched is
    left alone.

    Args:
        artifact: Canonical artifact path.

    Yields:
        None while the guarded step runs.
    """
    before = _fingerprint(artifact)
    try:
        yield
    except BaseException:
        after = _fingerprint(artifact)
        if after is not None and after != before:
            logger.warning("Deleting partially built artifact: %s", artifact)
            artifact.unlink(missing_ok=True)
        raise


def ensure_current_mtime(
    artifact: Path,
    built_mtime: float,
    newest_input: float | None,
    touch: TouchFn = set_file_mtime,
) -> float | None:
    """Make sure an artifact is not older than its newest input.

    Cargo may decide from its own fingerprints that nothing needs relinking
    and leave the binary untouched. Bump its mtime so it reads as current.

    Args:
        artifact: Existing artifact path.
        built_mtime: Artifact mtime as read after the build.
        newest_input: Newest input mtime, or None.
        touch: Setter paired with the clock that read ``built_mtime``.

    Returns:
        The new mtime, or None if the artifact was left alone.
    """
    if newest_input is None or built_mtime >= newest_input:
        return None
    stamp = max(time.time(), newest_input)
    logger.debug("Touching %s (%.6f -> %.6f)", artifact, built_mtime, stamp)
    touch(artifact, stamp)
    return stamp


def install_artifact(source: Path, config: InstallConfig) -> Path:
    """Install a binary to ``${DESTDIR}${PREFIX}/bin/<app>``.

    The file is copied to a temporary name in the destination directory,
    given ``config.mode`` and renamed into place, so the installed path
    never holds a partial copy. The destination directory must already
    exist.

    Args:
        source: Built artifact to install.
        config: Install configuration.

    Returns:
        Path of the installed file.

    Raises:
        InstallError: If the source is missing or the copy fails.
    """
    if not source.is_file():
        raise InstallError(
            f"Release artifact not found: {source}",
            code="artifact_not_found",
        )

    dest = config.path
    if not config.bin_dir.is_dir():
        raise InstallError(
            f"Install directory does not exist: {config.bin_dir}",
            code="install_failed",
        )

    logger.info("Installing %s -> %s (mode %o)", source, dest, config.mode)

    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=config.bin_dir,
            prefix=f".{config.app_name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
        shutil.copyfile(source, tmp_path)
        tmp_path.chmod(config.mode)
        os.replace(tmp_path, dest)
    except OSError as e:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise InstallError(
            f"Failed to install {source} to {dest}: {e}",
            code="install_failed",
        ) from e
    except BaseException:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise

    return dest


def uninstall_artifact(config: InstallConfig) -> bool:
    """Remove the installed binary.

    A missing file is not an error.

    Args:
        config: Install configuration.

    Returns:
        True if a file was removed, False if it was already absent.

    Raises:
        InstallError: If removal fails for any reason other than absence.
    """
    path = config.path
    try:
        path.unlink()
    except FileNotFoundError:
        logger.info("Nothing to uninstall at %s", path)
        return False
    except OSError as e:
        raise InstallError(
            f"Failed to remove {path}: {e}",
            code="uninstall_failed",
        ) from e
    logger.info("Removed %s", path)
    return True


__all__ = [
    "InstallError",
    "delete_on_error",
    "ensure_current_mtime",
    "install_artifact",
    "uninstall_artifact",
]
