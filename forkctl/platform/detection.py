"""Host operating system detection.

Cargo names its release binary after the host platform (``zed.exe`` on
Windows, ``zed`` elsewhere), and ISCC only runs on Windows, so the installer
procedure needs to know where it is running.
"""

from __future__ import annotations

import sys as _sys
from enum import Enum, auto
from functools import lru_cache

__all__ = ["Platform", "detect_platform", "is_windows"]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self == Platform.WINDOWS else ""

    def exe_name(self, name: str) -> str:
        """Executable name with platform suffix ("zed" -> "zed.exe" on Windows)."""
        return f"{name}{self.exe_suffix}"


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the current operating system (cached)."""
    # platform.system() may query WMI on Windows (slow on some runners).
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def is_windows() -> bool:
    return detect_platform() == Platform.WINDOWS
