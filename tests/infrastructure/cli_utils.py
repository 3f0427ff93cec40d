"""
Utilities for working with CLI in tests.
"""

import json
import os
import subprocess
import sys
from pathlib import Path


def run_cli(root: Path, *args: str) -> subprocess.CompletedProcess:
    """
    Runs vtlite.cli with specified arguments in the given directory.

    Args:
        root: Working directory for command execution
        *args: Command line arguments for vtlite.cli

    Returns:
        CompletedProcess with execution results
    """
    env = os.environ.copy()
    env.pop("VTL_DEBUG", None)
    repo_root = str(Path(__file__).resolve().parents[2])
    env["PYTHONPATH"] = os.pathsep.join(p for p in (repo_root, env.get("PYTHONPATH")) if p)
    return subprocess.run(
        [sys.executable, "-m", "vtlite.cli", *args],
        cwd=root, env=env, capture_output=True, text=True, encoding="utf-8"
    )


def jload(s: str):
    """Parses JSON output of the CLI."""
    return json.loads(s)
