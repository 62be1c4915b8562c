"""Typed configuration loading and access.

This module maps the optional ``forkctl.toml`` at the repository root onto
frozen dataclasses. Every key has a default that reproduces the behavior of
the fork's original CI workflows, so an absent file is a valid config.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, cast

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_str, get_str_list, get_table

__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "ConfigError",
    "ConflictConfig",
    "GitConfig",
    "InstallerConfig",
    "PublishConfig",
    "UpstreamConfig",
    "WorkflowPolicy",
    "WorkflowsConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "forkctl.toml"

# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------

DEFAULT_UPSTREAM_REPO = "zed-industries/zed"
DEFAULT_BRANCH = "main"
DEFAULT_GITHUB_API = "https://api.github.com"
DEFAULT_COMMIT_MESSAGE = "Sync with upstream/main"
DEFAULT_WORKFLOWS_PATH = ".github/workflows"
DEFAULT_PREFER_UPSTREAM = ("crates/eval/src/judge_prompt.hbs",)
DEFAULT_ISCC_PATH = r"C:\Program Files (x86)\Inno Setup 6\ISCC.exe"

WorkflowPolicy = Literal["unstage_restore", "restore"]
_WORKFLOW_POLICIES: tuple[str, ...] = ("unstage_restore", "restore")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class UpstreamConfig:
    """The project the fork follows."""

    repo: str = DEFAULT_UPSTREAM_REPO
    remote: str = "upstream"
    branch: str = DEFAULT_BRANCH
    url: str | None = None
    api_url: str = DEFAULT_GITHUB_API

    @property
    def clone_url(self) -> str:
        return self.url or f"https://github.com/{self.repo}.git"

    @property
    def tracking_ref(self) -> str:
        """Remote-tracking ref merged into the fork, e.g. ``upstream/main``."""
        return f"{self.remote}/{self.branch}"


@dataclass(frozen=True, slots=True)
class GitConfig:
    """The fork side: where merges land and how they are recorded."""

    remote: str = "origin"
    branch: str = DEFAULT_BRANCH
    user_name: str | None = None
    user_email: str | None = None
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    skip_synced_releases: bool = False


@dataclass(frozen=True, slots=True)
class WorkflowsConfig:
    """Fork-owned CI definitions that upstream must never overwrite."""

    path: str = DEFAULT_WORKFLOWS_PATH
    policy: WorkflowPolicy = "unstage_restore"


@dataclass(frozen=True, slots=True)
class ConflictConfig:
    """Paths whose conflicts are settled in upstream's favor."""

    prefer_upstream: tuple[str, ...] = DEFAULT_PREFER_UPSTREAM


@dataclass(frozen=True, slots=True)
class InstallerConfig:
    """Release binary and Inno Setup installer settings."""

    package: str = "zed"
    manifest: str = "crates/zed/Cargo.toml"
    exe_name: str = "zed"
    app_name: str = "Zed"
    publisher: str = "Zed Industries"
    publisher_url: str = "https://zed.dev"
    output_base: str = "zed-windows-x86_64"
    script: str = "zed.iss"
    output_dir: str = "Output"
    iscc: str = DEFAULT_ISCC_PATH
    add_to_path: bool = True
    desktop_icon: bool = True
    codegen_units: int = 16
    lto: str = "thin"
    cargo_home: str | None = None


@dataclass(frozen=True, slots=True)
class PublishConfig:
    """Where and how built installers are released."""

    repo: str | None = None
    tag_prefix: str = "daily-"
    title_prefix: str = "Zed Daily Build "
    prerelease: bool = True
    draft: bool = False


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    git: GitConfig = field(default_factory=GitConfig)
    workflows: WorkflowsConfig = field(default_factory=WorkflowsConfig)
    conflicts: ConflictConfig = field(default_factory=ConflictConfig)
    installer: InstallerConfig = field(default_factory=InstallerConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On values that parse but are not allowed.
        """
        upstream: StrDict = get_table(data, "upstream") or {}
        git: StrDict = get_table(data, "git") or {}
        workflows: StrDict = get_table(data, "workflows") or {}
        conflicts: StrDict = get_table(data, "conflicts") or {}
        installer: StrDict = get_table(data, "installer") or {}
        publish: StrDict = get_table(data, "publish") or {}

        policy = get_str(workflows, "policy") or "unstage_restore"
        if policy not in _WORKFLOW_POLICIES:
            raise ValueError(
                f"workflows.policy must be one of {', '.join(_WORKFLOW_POLICIES)}, got {policy!r}"
            )

        prefer_upstream = get_str_list(conflicts, "prefer_upstream")
        d_inst = InstallerConfig()
        d_pub = PublishConfig()

        title_prefix = publish.get("title_prefix")
        return cls(
            upstream=UpstreamConfig(
                repo=get_str(upstream, "repo") or DEFAULT_UPSTREAM_REPO,
                remote=get_str(upstream, "remote") or "upstream",
                branch=get_str(upstream, "branch") or DEFAULT_BRANCH,
                url=get_str(upstream, "url"),
                api_url=(get_str(upstream, "api_url") or DEFAULT_GITHUB_API).rstrip("/"),
            ),
            git=GitConfig(
                remote=get_str(git, "remote") or "origin",
                branch=get_str(git, "branch") or DEFAULT_BRANCH,
                user_name=get_str(git, "user_name"),
                user_email=get_str(git, "user_email"),
                commit_message=get_str(git, "commit_message") or DEFAULT_COMMIT_MESSAGE,
                skip_synced_releases=bool(get_bool(git, "skip_synced_releases")),
            ),
            workflows=WorkflowsConfig(
                path=(get_str(workflows, "path") or DEFAULT_WORKFLOWS_PATH).rstrip("/"),
                policy=cast(WorkflowPolicy, policy),
            ),
            conflicts=ConflictConfig(
                prefer_upstream=tuple(prefer_upstream)
                if prefer_upstream is not None
                else DEFAULT_PREFER_UPSTREAM
            ),
            installer=InstallerConfig(
                package=get_str(installer, "package") or d_inst.package,
                manifest=get_str(installer, "manifest") or d_inst.manifest,
                exe_name=get_str(installer, "exe_name") or d_inst.exe_name,
                app_name=get_str(installer, "app_name") or d_inst.app_name,
                publisher=get_str(installer, "publisher") or d_inst.publisher,
                publisher_url=get_str(installer, "publisher_url") or d_inst.publisher_url,
                output_base=get_str(installer, "output_base") or d_inst.output_base,
                script=get_str(installer, "script") or d_inst.script,
                output_dir=get_str(installer, "output_dir") or d_inst.output_dir,
                iscc=get_str(installer, "iscc") or d_inst.iscc,
                add_to_path=_bool_or(installer, "add_to_path", d_inst.add_to_path),
                desktop_icon=_bool_or(installer, "desktop_icon", d_inst.desktop_icon),
                codegen_units=get_int(installer, "codegen_units") or d_inst.codegen_units,
                lto=get_str(installer, "lto") or d_inst.lto,
                cargo_home=get_str(installer, "cargo_home"),
            ),
            publish=PublishConfig(
                repo=get_str(publish, "repo"),
                tag_prefix=get_str(publish, "tag_prefix") or d_pub.tag_prefix,
                # A trailing space is meaningful here, so no stripping.
                title_prefix=title_prefix if isinstance(title_prefix, str) else d_pub.title_prefix,
                prerelease=_bool_or(publish, "prerelease", d_pub.prerelease),
                draft=_bool_or(publish, "draft", d_pub.draft),
            ),
        )


def _bool_or(table: Mapping[str, object], key: str, default: bool) -> bool:
    value = get_bool(table, key)
    return default if value is None else value


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to forkctl.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))


def load_config_or_default(root: Path) -> Result[Config, ConfigError]:
    """Load ``<root>/forkctl.toml``, or defaults if the file does not exist.

    A file that exists but is invalid is still an error.
    """
    path = root / CONFIG_FILENAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
