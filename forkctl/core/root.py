"""Repository root detection.

The fork checkout is identified by a ``forkctl.toml`` file or, failing that,
by a ``.git`` entry (directory, or file for worktrees and submodules).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILENAME
from .result import Err, Ok, Result

__all__ = [
    "ROOT_ENV_VAR",
    "RootError",
    "detect_root",
    "find_root_upward",
    "is_repo_root",
]

ROOT_ENV_VAR = "FORKCTL_ROOT"


@dataclass(frozen=True, slots=True)
class RootError:
    """Error when the repository root cannot be determined."""

    message: str
    searched_from: Path | None = None


def is_repo_root(path: Path) -> bool:
    return (path / CONFIG_FILENAME).is_file() or (path / ".git").exists()


def find_root_upward(start: Path) -> Path | None:
    """Return the nearest directory at or above ``start`` that is a repo root."""
    for parent in (start, *start.parents):
        if is_repo_root(parent):
            return parent
    return None


def detect_root(
    *,
    start_dir: Path | None = None,
    env_var: str = ROOT_ENV_VAR,
) -> Result[Path, RootError]:
    """Detect the repository root.

    Detection order:
    1. ``$FORKCTL_ROOT`` (must point at a repo root)
    2. Search upward from ``start_dir`` (or cwd)
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir() and is_repo_root(env_path):
            return Ok(env_path)
        return Err(
            RootError(
                message=f"${env_var} is set to '{env_value}' but it is not a repository root",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_root_upward(search_start)
    if found is None:
        return Err(
            RootError(
                message=f"Could not find repository root ({CONFIG_FILENAME} or .git not found)",
                searched_from=search_start,
            )
        )
    return Ok(found)
