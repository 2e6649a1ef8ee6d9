# eval_bar/utils/system_utils.py
"""
Provides generic, system-level utility functions.
"""
import os
import shutil
from pathlib import Path
from typing import Optional


def resolve_engine_executable(identifier: str) -> Path:
    """
    Resolves an engine candidate identifier to an executable file.

    The identifier is tried, in order, as:
    1. A path to an executable file.
    2. A program name on the system's `PATH` (using `shutil.which`).

    Raises:
        FileNotFoundError: If the identifier names no executable.
    """
    path = Path(identifier).expanduser()
    if path.is_file() and os.access(path, os.X_OK):
        return path.resolve()

    if system_path := shutil.which(identifier):
        return Path(system_path)

    raise FileNotFoundError(f"Engine executable '{identifier}' not found as a file or on PATH.")


def cpu_count() -> int:
    return os.cpu_count() or 1


def probe_threaded_support(force: Optional[bool] = None) -> bool:
    """Whether a multi-threaded engine build can run here. `force` overrides the probe."""
    if force is not None:
        return force
    return cpu_count() > 1
