"""Configuration settings for ligrust_build.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.

``DESTDIR`` and ``PREFIX`` are honoured unprefixed, the way a Makefile
reads them; every other setting uses the ``LIGRUST_`` prefix.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ligrust_build.types import BuildProfile

DEFAULT_RELEASE_RUSTFLAGS = "-C link-arg=-s -C opt-level=2 -C target-cpu=native --emit=asm"
DEFAULT_INSTALL_MODE = 0o755


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the LIGRUST_ prefix
    (plus plain DESTDIR/PREFIX). CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIGRUST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Install location
    destdir: str = Field(
        default="",
        validation_alias=AliasChoices("LIGRUST_DESTDIR", "DESTDIR", "destdir"),
        description="Staging root prepended verbatim to the install path",
    )
    prefix: str = Field(
        default="/usr/local",
        validation_alias=AliasChoices("LIGRUST_PREFIX", "PREFIX", "prefix"),
        description="Installation prefix",
    )
    install_mode: int = Field(
        default=DEFAULT_INSTALL_MODE,
        ge=0,
        le=0o7777,
        description="Permission bits of the installed binary",
    )

    # Project layout
    app_name: str = Field(default="ligrust", description="Binary name")
    project_dir: Path = Field(
        default=Path("."),
        description="Crate root containing the manifest",
    )
    source_dir: Path = Field(
        default=Path("src"),
        description="Source tree, relative to the project directory",
    )
    manifest_name: str = Field(default="Cargo.toml", description="Manifest file")
    lock_name: str = Field(default="Cargo.lock", description="Lock file")
    target_dir: Path = Field(
        default=Path("target"),
        description="Cargo output directory, relative to the project directory",
    )

    # Toolchain
    cargo: str = Field(default="cargo", description="Cargo executable")
    release_rustflags: str = Field(
        default=DEFAULT_RELEASE_RUSTFLAGS,
        description="RUSTFLAGS used for release builds",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("install_mode", mode="before")
    @classmethod
    def _parse_octal_mode(cls, value: object) -> object:
        # "755" and "0o755" from the environment are octal, not decimal
        if isinstance(value, str):
            return int(value.removeprefix("0o"), 8)
        return value

    def install_config(self) -> InstallConfig:
        """Build the explicit install configuration from these settings."""
        return InstallConfig(
            destdir=self.destdir,
            prefix=self.prefix,
            app_name=self.app_name,
            mode=self.install_mode,
        )

    def project_layout(self) -> ProjectLayout:
        """Build the explicit project layout from these settings."""
        root = self.project_dir
        return ProjectLayout(
            root=root,
            manifest=root / self.manifest_name,
            lock_file=root / self.lock_name,
            source_dir=root / self.source_dir,
            target_dir=root / self.target_dir,
            app_name=self.app_name,
        )


@dataclass(frozen=True)
class InstallConfig:
    """Where and how the release binary is installed.

    Attributes:
        destdir: Staging root, concatenated in front of the prefix.
        prefix: Installation prefix.
        app_name: Installed binary name.
        mode: Permission bits applied to the installed file.
    """

    destdir: str = ""
    prefix: str = "/usr/local"
    app_name: str = "ligrust"
    mode: int = DEFAULT_INSTALL_MODE

    @property
    def bin_dir(self) -> Path:
        """``${DESTDIR}${PREFIX}/bin``."""
        return Path(f"{self.destdir}{self.prefix}") / "bin"

    @property
    def path(self) -> Path:
        """``${DESTDIR}${PREFIX}/bin/<app>``."""
        return self.bin_dir / self.app_name


@dataclass(frozen=True)
class ProjectLayout:
    """Filesystem layout of the crate being built."""

    root: Path
    manifest: Path
    lock_file: Path
    source_dir: Path
    target_dir: Path
    app_name: str = "ligrust"

    def artifact(self, profile: BuildProfile) -> Path:
        """Return the canonical artifact path for a build profile."""
        return self.target_dir / profile.value / self.app_name

    @classmethod
    def for_root(cls, root: Path, app_name: str = "ligrust") -> ProjectLayout:
        """Return the conventional cargo layout rooted at ``root``."""
        return cls(
            root=root,
            manifest=root / "Cargo.toml",
            lock_file=root / "Cargo.lock",
            source_dir=root / "src",
            target_dir=root / "target",
            app_name=app_name,
        )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "DEFAULT_INSTALL_MODE",
    "DEFAULT_RELEASE_RUSTFLAGS",
    "InstallConfig",
    "ProjectLayout",
    "Settings",
    "get_settings",
    "print_settings_json",
]
