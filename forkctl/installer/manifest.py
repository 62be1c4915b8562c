"""Package version lookup in Cargo manifests.

Reads ``[package].version`` of a named package. Workspace members may
inherit it (``version.workspace = true``); the value then comes from the
nearest enclosing ``Cargo.toml`` that has a ``[workspace]`` table.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from forkctl.core.result import Err, Ok, Result
from forkctl.core.structured import StrDict, as_str_dict, get_bool, get_str, get_table
from forkctl.installer.errors import ManifestInvalid, VersionNotFound

__all__ = ["read_package_version"]


def read_package_version(
    manifest: Path, package: str
) -> Result[str, ManifestInvalid | VersionNotFound]:
    data = _load(manifest)
    if isinstance(data, Err):
        return data

    pkg = get_table(data.value, "package")
    if pkg is None or get_str(pkg, "name") != package:
        return Err(VersionNotFound(path=manifest, package=package))

    version = get_str(pkg, "version")
    if version is not None:
        return Ok(version)

    inherited = get_table(pkg, "version")
    if inherited is not None and get_bool(inherited, "workspace") is True:
        return _workspace_version(manifest, package)

    return Err(VersionNotFound(path=manifest, package=package))


def _workspace_version(
    manifest: Path, package: str
) -> Result[str, ManifestInvalid | VersionNotFound]:
    start = manifest.resolve().parent
    for directory in (start, *start.parents):
        candidate = directory / "Cargo.toml"
        if not candidate.is_file():
            continue
        data = _load(candidate)
        if isinstance(data, Err):
            return data
        workspace = get_table(data.value, "workspace")
        if workspace is None:
            continue
        version = get_str(get_table(workspace, "package") or {}, "version")
        if version is None:
            return Err(VersionNotFound(path=candidate, package=package))
        return Ok(version)

    return Err(VersionNotFound(path=manifest, package=package))


def _load(path: Path) -> Result[StrDict, ManifestInvalid]:
    try:
        data_obj: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(ManifestInvalid(path=path, reason="file not found"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ManifestInvalid(path=path, reason=str(e)))
    except tomllib.TOMLDecodeError as e:
        return Err(ManifestInvalid(path=path, reason=f"invalid TOML: {e}"))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ManifestInvalid(path=path, reason="root is not a table"))
    return Ok(data)
