"""Windows installer builder."""

from forkctl.installer.errors import (
    CompileFailed,
    InstallerError,
    ManifestInvalid,
    OutputMissing,
    PublishFailed,
    ScriptCompileFailed,
    ToolMissing,
    VersionNotFound,
)
from forkctl.installer.iss import InstallerSpec, render_script
from forkctl.installer.manifest import read_package_version
from forkctl.installer.service import InstallerArtifact, InstallerService

__all__ = [
    # errors
    "CompileFailed",
    "InstallerError",
    "ManifestInvalid",
    "OutputMissing",
    "PublishFailed",
    "ScriptCompileFailed",
    "ToolMissing",
    "VersionNotFound",
    # script
    "InstallerSpec",
    "render_script",
    "read_package_version",
    # service
    "InstallerArtifact",
    "InstallerService",
]
