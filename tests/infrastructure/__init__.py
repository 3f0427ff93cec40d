"""
Unified test infrastructure for vtlite.

Modules:
- file_utils: Utilities for creating files and directories
- cli_utils: Running the vtl CLI in a subprocess
- rendering_utils: Shortcuts for parsing and evaluating templates
"""

from .file_utils import write
from .cli_utils import run_cli, jload
from .rendering_utils import render, tokens_of

__all__ = [
    "write",
    "run_cli",
    "jload",
    "render",
    "tokens_of",
]
