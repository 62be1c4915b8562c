"""The one place external tools (git, gh, cargo, ISCC) are started.

A non-zero exit, a timeout and a missing executable all come back as a
``ProcessError`` value.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from forkctl.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_silent"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that exited non-zero, timed out, or never started (returncode -1)."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        head = " ".join(self.command[:3])
        suffix = " ..." if len(self.command) > 3 else ""
        return f"{head}{suffix} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """Best available human-readable failure text."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` with output captured; ``Ok(stdout)`` on exit 0.

    ``env`` replaces the environment when given.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return _failed(cmd, f"Command timed out after {timeout}s", stdout=partial)
    except OSError as e:
        return _failed(cmd, str(e))

    if proc.returncode != 0:
        return _failed(cmd, proc.stderr, stdout=proc.stdout, returncode=proc.returncode)
    return Ok(proc.stdout)


def run_silent(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[None, ProcessError]:
    """Run ``cmd`` with output going straight to the CI log (cargo, ISCC).

    Nothing is captured, so a failure carries only the exit code.
    """
    try:
        proc = subprocess.run(cmd, cwd=str(cwd), env=env, timeout=timeout, check=False)
    except subprocess.TimeoutExpired:
        return _failed(cmd, f"Command timed out after {timeout}s")
    except OSError as e:
        return _failed(cmd, str(e))

    if proc.returncode != 0:
        return _failed(cmd, "", returncode=proc.returncode)
    return Ok(None)


def _failed(
    cmd: list[str], stderr: str, *, stdout: str = "", returncode: int = -1
) -> Err[ProcessError]:
    error = ProcessError(command=tuple(cmd), returncode=returncode, stdout=stdout, stderr=stderr)
    return Err(error)
