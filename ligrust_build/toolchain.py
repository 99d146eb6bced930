"""Toolchain invocation for cargo builds.

This module handles:
- The Toolchain interface the orchestrator sequences
- Composing cargo commands for debug, release, test and clean
- Executing cargo with subprocess, forwarding its output verbatim

Cargo is treated as a black box: it owns dependency resolution, the
artifact cache and the test runner.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from ligrust_build.config import DEFAULT_RELEASE_RUSTFLAGS, ProjectLayout

logger = logging.getLogger(__name__)


class ToolchainError(Exception):
    """Raised when a toolchain invocation fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "toolchain_failed",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.code = code


@dataclass
class ToolchainResult:
    """Result of a successful toolchain invocation.

    Attributes:
        command: The command that was executed.
        exit_code: Process exit code.
        started_at: Start time.
        finished_at: Finish time.
    """

    command: str
    exit_code: int
    started_at: datetime
    finished_at: datetime

    @property
    def duration(self) -> float:
        """Wall-clock duration in seconds."""
        return (self.finished_at - self.started_at).total_seconds()


class Toolchain(Protocol):
    """External compiler, test runner and cache manager.

    Each method blocks until the external process exits and raises
    ToolchainError on failure.
    """

    def compile_debug(self) -> ToolchainResult: ...

    def compile_release(self) -> ToolchainResult: ...

    def run_tests(self) -> ToolchainResult: ...

    def clean_cache(self) -> ToolchainResult: ...


def compose_build_command(
    app_name: str,
    release: bool = False,
    cargo: str = "cargo",
) -> list[str]:
    """Compose the ``cargo build`` command for the application binary.

    Args:
        app_name: Binary target name.
        release: Build with the release profile.
        cargo: Cargo executable.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [cargo, "build", "--bin", app_name]
    if release:
        cmd.append("--release")
    return cmd


def compose_test_command(cargo: str = "cargo") -> list[str]:
    """Compose the command running every test of every workspace member."""
    return [cargo, "test", "--all", "--all-targets", "--all-features"]


def compose_clean_command(cargo: str = "cargo") -> list[str]:
    """Compose the command removing cargo's artifact cache."""
    return [cargo, "clean"]


def run_command(
    cmd: list[str],
    cwd: os.PathLike[str] | str,
    env_override: dict[str, str] | None = None,
) -> ToolchainResult:
    """Run a toolchain command to completion.

    stdout and stderr are inherited so diagnostics reach the user unchanged.
    No timeout is applied.

    Args:
        cmd: Command to execute.
        cwd: Working directory.
        env_override: Optional environment variable overrides.

    Returns:
        ToolchainResult for a zero exit status.

    Raises:
        ToolchainError: If the command cannot be started or exits non-zero.
    """
    cmd_str = shlex.join(cmd)
    logger.info("Executing: %s", cmd_str)
    logger.debug("Working directory: %s", cwd)

    env: dict[str, str] | None = None
    if env_override:
        env = dict(os.environ)
        env.update(env_override)
        for key, value in env_override.items():
            logger.debug("Environment override: %s=%s", key, value)

    started_at = datetime.now(timezone.utc)
    try:
        result = subprocess.run(cmd, cwd=cwd, env=env, check=False)
    except OSError as e:
        error_message = f"Failed to execute {cmd[0]}: {e}"
        logger.error(error_message)
        raise ToolchainError(
            error_message,
            exit_code=None,
            code="execution_error",
        ) from e
    finished_at = datetime.now(timezone.utc)

    if result.returncode != 0:
        error_message = f"{cmd_str} failed with exit code {result.returncode}"
        logger.error(error_message)
        raise ToolchainError(error_message, exit_code=result.returncode)

    logger.debug(
        "Finished %s in %.1fs", cmd_str, (finished_at - started_at).total_seconds()
    )
    return ToolchainResult(
        command=cmd_str,
        exit_code=result.returncode,
        started_at=started_at,
        finished_at=finished_at,
    )


class CargoToolchain:
    """Toolchain implementation backed by cargo."""

    def __init__(
        self,
        layout: ProjectLayout,
        cargo: str = "cargo",
        release_rustflags: str = DEFAULT_RELEASE_RUSTFLAGS,
    ) -> None:
        self.layout = layout
        self.cargo = cargo
        self.release_rustflags = release_rustflags

    def compile_debug(self) -> ToolchainResult:
        cmd = compose_build_command(self.layout.app_name, cargo=self.cargo)
        return run_command(cmd, cwd=self.layout.root)

    def compile_release(self) -> ToolchainResult:
        cmd = compose_build_command(
            self.layout.app_name, release=True, cargo=self.cargo
        )
        return run_command(
            cmd,
            cwd=self.layout.root,
            env_override={"RUSTFLAGS": self.release_rustflags},
        )

    def run_tests(self) -> ToolchainResult:
        return run_command(compose_test_command(self.cargo), cwd=self.layout.root)

    def clean_cache(self) -> ToolchainResult:
        return run_command(compose_clean_command(self.cargo), cwd=self.layout.root)


__all__ = [
    "CargoToolchain",
    "Toolchain",
    "ToolchainError",
    "ToolchainResult",
    "compose_build_command",
    "compose_clean_command",
    "compose_test_command",
    "run_command",
]
