"""Tests for shared types."""

from ligrust_build.types import BuildProfile, OperationResult, TargetState


class TestEnums:
    """Test enum values."""

    def test_build_profile_values(self) -> None:
        """Profile values are cargo's output directory names."""
        assert BuildProfile.DEBUG.value == "debug"
        assert BuildProfile.RELEASE.value == "release"

    def test_target_state_values(self) -> None:
        """A target is either stale or current."""
        assert {s.value for s in TargetState} == {"stale", "current"}

    def test_str_enum(self) -> None:
        """Enums compare equal to their string values."""
        assert TargetState.CURRENT == "current"


class TestOperationResult:
    """Test OperationResult dataclass."""

    def test_defaults(self) -> None:
        """details defaults to an independent empty dict."""
        a = OperationResult(success=True, message="ok", target="build")
        b = OperationResult(success=True, message="ok", target="check")
        a.details["rebuilt"] = True

        assert b.details == {}
