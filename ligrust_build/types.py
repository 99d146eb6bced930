"""Shared type definitions for ligrust_build.

This module contains enums and dataclasses shared across modules to avoid
circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum


class BuildProfile(str, Enum):
    """Cargo build profile; the value is the directory name under target/."""

    DEBUG = "debug"
    RELEASE = "release"


class TargetState(str, Enum):
    """Freshness of a file target relative to its inputs."""

    STALE = "stale"
    CURRENT = "current"


@dataclass
class OperationResult:
    """Result of an orchestrator operation (build, install, test, ...)."""

    success: bool
    message: str
    target: str
    details: dict[str, object] = field(default_factory=dict)


__all__ = [
    "BuildProfile",
    "OperationResult",
    "TargetState",
]
