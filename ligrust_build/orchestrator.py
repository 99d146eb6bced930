"""Build orchestrator: the rule graph over the cargo toolchain.

This module provides the command surface:
- build()/all: up-to-date release binary
- check(): up-to-date debug binary
- install(): build, then copy the release binary under the prefix
- uninstall(): remove the installed binary (idempotent)
- test(): run the full test suite, always
- clean(): delegate cache removal to the toolchain
- status(): report target freshness without building

Targets run strictly in sequence. A failure raises and nothing that
depends on the failed target is attempted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from ligrust_build.artifacts import (
    delete_on_error,
    ensure_current_mtime,
    install_artifact,
    uninstall_artifact,
)
from ligrust_build.config import InstallConfig, ProjectLayout
from ligrust_build.staleness import (
    MtimeFn,
    TouchFn,
    collect_inputs,
    file_mtime,
    is_current,
    newest_input_mtime,
    set_file_mtime,
    target_state,
)
from ligrust_build.toolchain import (
    CargoToolchain,
    Toolchain,
    ToolchainError,
    ToolchainResult,
)
from ligrust_build.types import BuildProfile, OperationResult

if TYPE_CHECKING:
    from ligrust_build.config import Settings

logger = logging.getLogger(__name__)

TARGETS = ("all", "build", "check", "install", "uninstall", "test", "clean")


class UnknownTargetError(Exception):
    """Raised when a target name is not part of the command surface."""

    def __init__(self, target: str, code: str = "unknown_target") -> None:
        super().__init__(
            f"Unknown target: {target} (expected one of: {', '.join(TARGETS)})"
        )
        self.target = target
        self.code = code


def _toolchain_details(result: ToolchainResult) -> dict[str, Any]:
    return {
        "command": result.command,
        "duration_seconds": round(result.duration, 3),
    }


class Orchestrator:
    """Sequences build, install and maintenance targets.

    Args:
        layout: Project layout (inputs and artifact paths).
        install_config: Install location and mode.
        toolchain: External toolchain collaborator.
        mtime: Clock used for staleness decisions.
        touch: Setter used to bump an artifact on the same clock.
    """

    def __init__(
        self,
        layout: ProjectLayout,
        install_config: InstallConfig,
        toolchain: Toolchain,
        mtime: MtimeFn = file_mtime,
        touch: TouchFn = set_file_mtime,
    ) -> None:
        self.layout = layout
        self.install_config = install_config
        self.toolchain = toolchain
        self.mtime = mtime
        self.touch = touch

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        toolchain: Toolchain | None = None,
    ) -> Orchestrator:
        """Create an orchestrator wired to cargo from settings."""
        layout = settings.project_layout()
        if toolchain is None:
            toolchain = CargoToolchain(
                layout,
                cargo=settings.cargo,
                release_rustflags=settings.release_rustflags,
            )
        return cls(layout, settings.install_config(), toolchain)

    def _ensure_current(
        self,
        target: str,
        profile: BuildProfile,
        compile_fn: Callable[[], ToolchainResult],
    ) -> OperationResult:
        artifact = self.layout.artifact(profile)
        inputs = collect_inputs(self.layout)

        if is_current(artifact, inputs, self.mtime):
            logger.info("%s is up to date", artifact)
            return OperationResult(
                success=True,
                message=f"{artifact} is up to date",
                target=target,
                details={"artifact": str(artifact), "rebuilt": False},
            )

        logger.info("Building %s (%s)", artifact, profile.value)
        with delete_on_error(artifact):
            result = compile_fn()

            built_mtime = self.mtime(artifact)
            if built_mtime is None:
                raise ToolchainError(
                    f"Toolchain exited successfully but {artifact} was not produced",
                    exit_code=None,
                    code="artifact_missing",
                )

            # Input list is re-read: the build may have generated sources
            newest = newest_input_mtime(collect_inputs(self.layout), self.mtime)
            ensure_current_mtime(artifact, built_mtime, newest, self.touch)

        return OperationResult(
            success=True,
            message=f"Built {artifact}",
            target=target,
            details={
                "artifact": str(artifact),
                "rebuilt": True,
                **_toolchain_details(result),
            },
        )

    def build(self) -> OperationResult:
        """Ensure the release artifact exists and is newer than all inputs."""
        return self._ensure_current(
            "build", BuildProfile.RELEASE, self.toolchain.compile_release
        )

    def check(self) -> OperationResult:
        """Ensure the debug artifact exists and is newer than all inputs."""
        return self._ensure_current(
            "check", BuildProfile.DEBUG, self.toolchain.compile_debug
        )

    def install(self) -> OperationResult:
        """Build the release artifact, then install it.

        The copy always happens, even if an identical file is already
        installed.
        """
        built = self.build()
        source = self.layout.artifact(BuildProfile.RELEASE)
        dest = install_artifact(source, self.install_config)
        return OperationResult(
            success=True,
            message=f"Installed {dest}",
            target="install",
            details={
                "source": str(source),
                "path": str(dest),
                "mode": oct(self.install_config.mode),
                "rebuilt": built.details.get("rebuilt", False),
            },
        )

    def uninstall(self) -> OperationResult:
        """Remove the installed artifact; absence is success."""
        path = self.install_config.path
        removed = uninstall_artifact(self.install_config)
        message = f"Removed {path}" if removed else f"{path} already absent"
        return OperationResult(
            success=True,
            message=message,
            target="uninstall",
            details={"path": str(path), "removed": removed},
        )

    def test(self) -> OperationResult:
        """Run the full test suite. Never gated on artifact freshness."""
        result = self.toolchain.run_tests()
        return OperationResult(
            success=True,
            message="Tests passed",
            target="test",
            details=_toolchain_details(result),
        )

    def clean(self) -> OperationResult:
        """Delegate artifact-cache removal to the toolchain."""
        result = self.toolchain.clean_cache()
        return OperationResult(
            success=True,
            message="Build cache cleaned",
            target="clean",
            details=_toolchain_details(result),
        )

    def status(self) -> dict[str, Any]:
        """Report target freshness without invoking the toolchain.

        Returns:
            Dictionary with per-artifact state and install status.
        """
        inputs = collect_inputs(self.layout)
        report: dict[str, Any] = {
            "inputs": len(inputs),
            "newest_input_mtime": newest_input_mtime(inputs, self.mtime),
        }
        for profile in BuildProfile:
            artifact = self.layout.artifact(profile)
            report[profile.value] = {
                "path": str(artifact),
                "state": target_state(artifact, inputs, self.mtime).value,
            }
        installed = self.install_config.path
        report["installed"] = {
            "path": str(installed),
            "present": self.mtime(installed) is not None,
        }
        return report

    def run(self, target: str) -> OperationResult:
        """Run one target of the command surface by name.

        Args:
            target: Target name; ``all`` is an alias of ``build``.

        Returns:
            OperationResult of the target.

        Raises:
            UnknownTargetError: If the name is not a known target.
        """
        handlers: dict[str, Callable[[], OperationResult]] = {
            "all": self.build,
            "build": self.build,
            "check": self.check,
            "install": self.install,
            "uninstall": self.uninstall,
            "test": self.test,
            "clean": self.clean,
        }
        try:
            handler = handlers[target]
        except KeyError:
            raise UnknownTargetError(target) from None
        logger.debug("Running target %s", target)
        return handler()

    def run_many(self, targets: Iterable[str]) -> list[OperationResult]:
        """Run targets in order, stopping at the first failure."""
        targets = list(targets)
        for target in targets:
            if target not in TARGETS:
                raise UnknownTargetError(target)
        return [self.run(target) for target in targets]


__all__ = [
    "TARGETS",
    "Orchestrator",
    "UnknownTargetError",
]
