"""ligrust-build - build and install orchestration for the ligrust binary.

This package decides when the ligrust crate needs rebuilding, drives cargo
to produce debug and release binaries, and installs the release binary
under a configurable prefix.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
