"""Shared fixtures for ligrust_build tests."""

import os
from pathlib import Path

import pytest

from ligrust_build.config import InstallConfig, ProjectLayout

INPUT_MTIME = 1_000_000.0


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient DESTDIR/PREFIX/LIGRUST_* out of the tests."""
    for key in list(os.environ):
        if key in ("DESTDIR", "PREFIX") or key.startswith("LIGRUST_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def project(tmp_path: Path) -> ProjectLayout:
    """Create a minimal crate with all inputs at a fixed mtime."""
    root = tmp_path / "crate"
    src = root / "src"
    (src / "algos").mkdir(parents=True)
    files = [
        root / "Cargo.toml",
        root / "Cargo.lock",
        src / "main.rs",
        src / "cli.rs",
        src / "algos" / "bfs.rs",
    ]
    for f in files:
        f.write_text(f"// {f.name}\n")
        os.utime(f, (INPUT_MTIME, INPUT_MTIME))
    return ProjectLayout.for_root(root)


@pytest.fixture
def stage(tmp_path: Path) -> InstallConfig:
    """Install config pointing at an existing staging prefix."""
    prefix = tmp_path / "stage"
    (prefix / "bin").mkdir(parents=True)
    return InstallConfig(destdir="", prefix=str(prefix))
