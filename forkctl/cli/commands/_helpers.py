"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
