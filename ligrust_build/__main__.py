"""Allow running as ``python -m ligrust_build``."""

from ligrust_build.cli import app

if __name__ == "__main__":
    app()
