"""Windows installer build: cargo release binary wrapped by Inno Setup.

``build()`` is a fixed sequence of hard stops. Each step either succeeds or
returns the error that ends the run; later steps never run on a failure:

1. prerequisites (cargo, ISCC)
2. drop a stale generated script
3. read the package version from its manifest
4. ``cargo build --release``
5. check the binary exists
6. write the Inno Setup script
7. compile it with ISCC
8. check the installer exists
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from forkctl.core.result import Err, Ok, Result
from forkctl.github.releases import PublishedRelease, daily_tag, publish_release
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
from forkctl.output.console import Style
from forkctl.platform.detection import detect_platform
from forkctl.platform.files import atomic_write_text, sha256_file
from forkctl.platform.process import run_silent

if TYPE_CHECKING:
    from forkctl.core.config import Config
    from forkctl.output.console import ConsoleProtocol

_CARGO_BUILD_TIMEOUT_SECONDS = 4 * 60 * 60.0
_ISCC_TIMEOUT_SECONDS = 30 * 60.0


@dataclass(frozen=True, slots=True)
class InstallerArtifact:
    version: str
    script_path: Path
    installer_path: Path
    sha256: str | None = None


class InstallerService:
    def __init__(self, *, root: Path, config: Config, console: ConsoleProtocol) -> None:
        self._root = root
        self._config = config
        self._console = console

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    @property
    def manifest_path(self) -> Path:
        return self._root / self._config.installer.manifest

    @property
    def script_path(self) -> Path:
        return self._root / self._config.installer.script

    @property
    def binary_path(self) -> Path:
        exe = detect_platform().exe_name(self._config.installer.exe_name)
        return self._root / "target" / "release" / exe

    @property
    def installer_path(self) -> Path:
        inst = self._config.installer
        return self._root / inst.output_dir / f"{inst.output_base}.exe"

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def check(self, *, skip_build: bool = False) -> Result[None, ToolMissing]:
        """Verify the build tools are installed."""
        if not skip_build:
            if shutil.which("cargo") is None:
                return Err(ToolMissing(tool_id="cargo", hint="Install rustup: https://rustup.rs"))
            self._console.print("cargo: ok", Style.DIM)

        iscc = self._resolve_iscc()
        if iscc is None:
            return Err(
                ToolMissing(
                    tool_id=f"ISCC ({self._config.installer.iscc})",
                    hint="Install Inno Setup 6: https://jrsoftware.org/isinfo.php",
                )
            )
        self._console.print(f"ISCC: {iscc}", Style.DIM)
        return Ok(None)

    def version(self) -> Result[str, ManifestInvalid | VersionNotFound]:
        return read_package_version(self.manifest_path, self._config.installer.package)

    def build(
        self, *, skip_build: bool = False, dry_run: bool = False
    ) -> Result[InstallerArtifact, InstallerError]:
        inst = self._config.installer

        self._console.header("Prerequisites")
        if not dry_run:
            checked = self.check(skip_build=skip_build)
            if isinstance(checked, Err):
                return checked

        script = self.script_path
        if script.exists() and not dry_run:
            script.unlink()
            self._console.print(f"removed stale {script.name}", Style.DIM)

        version = self.version()
        if isinstance(version, Err):
            return version
        self._console.print(f"version: {version.value}", Style.BOLD)

        if not skip_build:
            self._console.header("Build")
            built = self._cargo_build(dry_run=dry_run)
            if isinstance(built, Err):
                return built

        binary = self.binary_path
        if not dry_run and not binary.is_file():
            return Err(OutputMissing(path=binary))

        self._console.header("Installer")
        content = render_script(InstallerSpec.from_config(inst, version.value))
        if dry_run:
            self._console.print(f"would write {script}", Style.DIM)
        else:
            # ISCC reads scripts as Windows text.
            atomic_write_text(script, content, newline="\r\n")
            self._console.print(f"wrote {script}", Style.DIM)

        script_arg = script.relative_to(self._root) if script.is_relative_to(self._root) else script
        iscc_cmd = [str(self._resolve_iscc() or inst.iscc), str(script_arg)]
        self._console.command(iscc_cmd)
        installer = self.installer_path
        if dry_run:
            return Ok(InstallerArtifact(version.value, script, installer))

        compiled = run_silent(iscc_cmd, cwd=self._root, timeout=_ISCC_TIMEOUT_SECONDS)
        if isinstance(compiled, Err):
            return Err(ScriptCompileFailed(returncode=compiled.error.returncode))

        if not installer.is_file():
            return Err(OutputMissing(path=installer))

        artifact = InstallerArtifact(
            version=version.value,
            script_path=script,
            installer_path=installer,
            sha256=sha256_file(installer),
        )
        self._console.success(f"{installer} ({artifact.sha256})")
        return Ok(artifact)

    def publish(
        self,
        *,
        installer: Path | None = None,
        tag: str | None = None,
        today: date | None = None,
        dry_run: bool = False,
    ) -> Result[PublishedRelease, InstallerError]:
        """Attach the installer to the dated release (created if missing)."""
        pub = self._config.publish
        asset = installer or self.installer_path
        if not dry_run and not asset.is_file():
            return Err(OutputMissing(path=asset))

        day = today or datetime.now(UTC).date()
        release_tag = tag or daily_tag(pub.tag_prefix, day)

        self._console.header("Publish")
        result = publish_release(
            root=self._root,
            tag=release_tag,
            title=f"{pub.title_prefix}{day.isoformat()}",
            asset=asset,
            console=self._console,
            repo=pub.repo,
            prerelease=pub.prerelease,
            draft=pub.draft,
            dry_run=dry_run,
        )
        if isinstance(result, Err):
            return Err(PublishFailed(message=result.error.message, hint=result.error.hint))

        verb = "created" if result.value.created else "updated"
        self._console.success(f"{verb} release {release_tag}")
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _cargo_build(self, *, dry_run: bool) -> Result[None, CompileFailed]:
        inst = self._config.installer
        env = dict(os.environ)
        env["CARGO_PROFILE_RELEASE_CODEGEN_UNITS"] = str(inst.codegen_units)
        env["CARGO_PROFILE_RELEASE_LTO"] = inst.lto
        if inst.cargo_home:
            cargo_home = Path(inst.cargo_home)
            if not dry_run:
                cargo_home.mkdir(parents=True, exist_ok=True)
            env["CARGO_HOME"] = str(cargo_home)
            self._console.print(f"CARGO_HOME={cargo_home}", Style.DIM)

        cmd = ["cargo", "build", "--release", "--package", inst.package]
        self._console.command(cmd)
        if dry_run:
            return Ok(None)

        result = run_silent(cmd, cwd=self._root, env=env, timeout=_CARGO_BUILD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(CompileFailed(returncode=result.error.returncode))
        return Ok(None)

    def _resolve_iscc(self) -> Path | None:
        configured = self._config.installer.iscc
        if Path(configured).is_file():
            return Path(configured)
        found = shutil.which(configured)
        return Path(found) if found else None
