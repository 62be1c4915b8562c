"""Platform abstraction layer."""

from .detection import Platform, detect_platform, is_windows
from .files import atomic_write_text, sha256_file
from .process import ProcessError, run, run_silent

__all__ = [
    # detection
    "Platform",
    "detect_platform",
    "is_windows",
    # files
    "atomic_write_text",
    "sha256_file",
    # process
    "ProcessError",
    "run",
    "run_silent",
]
