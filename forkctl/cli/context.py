from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from forkctl.core.config import Config, load_config_or_default
from forkctl.core.errors import ErrorCode
from forkctl.core.result import Err
from forkctl.core.root import detect_root
from forkctl.github.http import HttpClient, RealHttpClient, token_from_env
from forkctl.output.console import ConsoleProtocol, RichConsole
from forkctl.output.errors import print_config_error, print_root_error


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def build_context() -> CLIContext:
    console = RichConsole()

    root_result = detect_root()
    if isinstance(root_result, Err):
        print_root_error(root_result.error, console)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    root = root_result.value

    # Unlike a missing file, a broken forkctl.toml is never silently ignored.
    config_result = load_config_or_default(root)
    if isinstance(config_result, Err):
        print_config_error(config_result.error, console)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(root=root, config=config_result.value, console=console)


def http_client() -> HttpClient:
    """GitHub API client, authenticated when a token is in the environment."""
    return RealHttpClient(token=token_from_env())
