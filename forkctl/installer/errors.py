from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ToolMissing:
    tool_id: str
    hint: str


@dataclass(frozen=True, slots=True)
class ManifestInvalid:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class VersionNotFound:
    path: Path
    package: str


@dataclass(frozen=True, slots=True)
class CompileFailed:
    returncode: int


@dataclass(frozen=True, slots=True)
class ScriptCompileFailed:
    returncode: int


@dataclass(frozen=True, slots=True)
class OutputMissing:
    path: Path


@dataclass(frozen=True, slots=True)
class PublishFailed:
    message: str
    hint: str | None = None


InstallerError = (
    ToolMissing
    | ManifestInvalid
    | VersionNotFound
    | CompileFailed
    | ScriptCompileFailed
    | OutputMissing
    | PublishFailed
)
