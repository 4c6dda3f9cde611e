"""Smoke tests to verify the package is importable and CLI is wired up."""

import subprocess
import sys


def test_import():
    import vidroi
    assert vidroi.__version__ == "0.1.0"


def test_cli_help():
    result = subprocess.run(
        [sys.executable, "-m", "typer", "vidroi.cli", "run", "--help"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "vidroi" in result.stdout.lower() or "usage" in result.stdout.lower()


def test_submit_help_lists_polygons():
    result = subprocess.run(
        [sys.executable, "-m", "typer", "vidroi.cli", "run", "submit", "--help"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "--polygons" in result.stdout
    assert "--canvas" in result.stdout
