"""Tests for toolchain module.

Tests cargo command composition and execution.
Uses mocked subprocess for execution tests.
"""

from unittest.mock import MagicMock, patch

import pytest

from ligrust_build.config import DEFAULT_RELEASE_RUSTFLAGS
from ligrust_build.toolchain import (
    CargoToolchain,
    ToolchainError,
    ToolchainResult,
    compose_build_command,
    compose_clean_command,
    compose_test_command,
    run_command,
)


class TestComposeCommands:
    """Tests for cargo command composition."""

    def test_debug_build(self):
        """Debug build targets the binary without --release."""
        assert compose_build_command("ligrust") == [
            "cargo",
            "build",
            "--bin",
            "ligrust",
        ]

    def test_release_build(self):
        """Release build adds --release."""
        cmd = compose_build_command("ligrust", release=True)
        assert cmd == ["cargo", "build", "--bin", "ligrust", "--release"]

    def test_custom_cargo(self):
        """Should use the configured cargo executable."""
        cmd = compose_build_command("ligrust", cargo="/opt/cargo")
        assert cmd[0] == "/opt/cargo"

    def test_test_command(self):
        """Tests run across all members, targets and features."""
        assert compose_test_command() == [
            "cargo",
            "test",
            "--all",
            "--all-targets",
            "--all-features",
        ]

    def test_clean_command(self):
        """Clean delegates to cargo clean."""
        assert compose_clean_command() == ["cargo", "clean"]


class TestRunCommand:
    """Tests for run_command with mocked subprocess."""

    def test_success(self, tmp_path):
        """Should return a result for exit code 0."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            result = run_command(["cargo", "clean"], cwd=tmp_path)

            assert isinstance(result, ToolchainResult)
            assert result.exit_code == 0
            assert result.command == "cargo clean"
            assert result.duration >= 0

    def test_output_is_not_captured(self, tmp_path):
        """Diagnostics go straight to the user's terminal."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            run_command(["cargo", "clean"], cwd=tmp_path)

            kwargs = mock_run.call_args.kwargs
            assert "stdout" not in kwargs
            assert "stderr" not in kwargs
            assert "capture_output" not in kwargs
            assert "timeout" not in kwargs
            assert kwargs["cwd"] == tmp_path

    def test_failure_raises(self, tmp_path):
        """Non-zero exit should raise with the exit code."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=101)

            with pytest.raises(ToolchainError) as exc_info:
                run_command(["cargo", "build"], cwd=tmp_path)

            assert exc_info.value.exit_code == 101
            assert exc_info.value.code == "toolchain_failed"

    def test_missing_executable(self, tmp_path):
        """An OS error starting the process is an execution error."""
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("cargo")

            with pytest.raises(ToolchainError) as exc_info:
                run_command(["cargo", "build"], cwd=tmp_path)

            assert exc_info.value.exit_code is None
            assert exc_info.value.code == "execution_error"

    def test_env_override_merges_environment(self, tmp_path, monkeypatch):
        """Overrides are layered over the inherited environment."""
        monkeypatch.setenv("CARGO_HOME", "/opt/cargo-home")
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            run_command(
                ["cargo", "build"], cwd=tmp_path, env_override={"RUSTFLAGS": "-C x"}
            )

            env = mock_run.call_args.kwargs["env"]
            assert env["RUSTFLAGS"] == "-C x"
            assert env["CARGO_HOME"] == "/opt/cargo-home"

    def test_no_override_inherits(self, tmp_path):
        """Without overrides the environment is inherited as-is."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            run_command(["cargo", "clean"], cwd=tmp_path)

            assert mock_run.call_args.kwargs["env"] is None


class TestCargoToolchain:
    """Tests for CargoToolchain."""

    def test_compile_release(self, project):
        """Release builds pass RUSTFLAGS and run in the crate root."""
        toolchain = CargoToolchain(project)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            toolchain.compile_release()

            cmd = mock_run.call_args.args[0]
            kwargs = mock_run.call_args.kwargs
            assert cmd == ["cargo", "build", "--bin", "ligrust", "--release"]
            assert kwargs["cwd"] == project.root
            assert kwargs["env"]["RUSTFLAGS"] == DEFAULT_RELEASE_RUSTFLAGS

    def test_release_flags(self):
        """Default release flags strip, optimize and target the host CPU."""
        assert "link-arg=-s" in DEFAULT_RELEASE_RUSTFLAGS
        assert "opt-level=2" in DEFAULT_RELEASE_RUSTFLAGS
        assert "target-cpu=native" in DEFAULT_RELEASE_RUSTFLAGS

    def test_compile_debug(self, project):
        """Debug builds use no flag overrides."""
        toolchain = CargoToolchain(project)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            toolchain.compile_debug()

            cmd = mock_run.call_args.args[0]
            assert cmd == ["cargo", "build", "--bin", "ligrust"]
            assert mock_run.call_args.kwargs["env"] is None

    def test_run_tests_and_clean(self, project):
        """Test and clean invoke the matching cargo subcommands."""
        toolchain = CargoToolchain(project, cargo="cargo-nightly")
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            toolchain.run_tests()
            toolchain.clean_cache()

            commands = [c.args[0] for c in mock_run.call_args_list]
            assert commands[0][:2] == ["cargo-nightly", "test"]
            assert commands[1] == ["cargo-nightly", "clean"]

    def test_custom_rustflags(self, project):
        """Configured release flags replace the defaults."""
        toolchain = CargoToolchain(project, release_rustflags="-C opt-level=3")
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)

            toolchain.compile_release()

            assert mock_run.call_args.kwargs["env"]["RUSTFLAGS"] == "-C opt-level=3"
