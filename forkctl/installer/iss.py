"""Inno Setup script rendering.

The script is a pure function of ``InstallerSpec``: no timestamps, no
machine paths, so two builds of the same version produce the same file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PureWindowsPath

from forkctl.core.config import InstallerConfig

__all__ = ["InstallerSpec", "render_script"]

# HKLM system environment, where the PATH entry is added.
_ENV_KEY = r"SYSTEM\CurrentControlSet\Control\Session Manager\Environment"


@dataclass(frozen=True, slots=True)
class InstallerSpec:
    """Everything the generated script depends on.

    Attributes:
        app_name: Display name ("Zed").
        version: AppVersion, from the package manifest.
        exe: Installed executable file name ("zed.exe").
        source: Executable path relative to the script, Windows separators.
        output_dir: Directory ISCC writes the installer to.
        output_base: Installer file name without ``.exe``.
    """

    app_name: str
    version: str
    publisher: str
    publisher_url: str
    exe: str
    source: str
    output_dir: str
    output_base: str
    add_to_path: bool = True
    desktop_icon: bool = True

    @classmethod
    def from_config(cls, config: InstallerConfig, version: str) -> InstallerSpec:
        """Spec for a script written to ``config.script`` under the repository root.

        ISCC resolves relative paths against the script's own directory, so the
        binary and output paths climb back to the root first.
        """
        exe = f"{config.exe_name}.exe"
        up = _to_root(config.script)
        return cls(
            app_name=config.app_name,
            version=version,
            publisher=config.publisher,
            publisher_url=config.publisher_url,
            exe=exe,
            source=f"{up}target\\release\\{exe}",
            output_dir=_from_root(up, config.output_dir),
            output_base=config.output_base,
            add_to_path=config.add_to_path,
            desktop_icon=config.desktop_icon,
        )


def _to_root(script: str) -> str:
    """``..\\`` once per directory between the script and the repository root."""
    depth = len(PureWindowsPath(script).parent.parts)
    return "..\\" * depth


def _from_root(up: str, path: str) -> str:
    win = PureWindowsPath(path)
    if win.is_absolute():
        return str(win)
    return f"{up}{win}"


def render_script(spec: InstallerSpec) -> str:
    """Render the ``.iss`` script (``\\n`` line endings)."""
    name = spec.app_name
    app_exe = f"{{app}}\\{spec.exe}"

    lines = [
        "[Setup]",
        f"AppName={name}",
        f"AppVersion={spec.version}",
        f"AppPublisher={spec.publisher}",
        f"AppPublisherURL={spec.publisher_url}",
        f"DefaultDirName={{autopf}}\\{name}",
        f"DefaultGroupName={name}",
        f"OutputDir={spec.output_dir}",
        f"OutputBaseFilename={spec.output_base}",
        "Compression=lzma",
        "SolidCompression=yes",
        f"UninstallDisplayName={name}",
        "WizardStyle=modern",
    ]
    if spec.add_to_path:
        lines.append("ChangesEnvironment=yes")

    lines += [
        "",
        "[Files]",
        f'Source: "{spec.source}"; DestDir: "{{app}}"; Flags: ignoreversion',
        "",
        "[Icons]",
        f'Name: "{{group}}\\{name}"; Filename: "{app_exe}"',
        f'Name: "{{group}}\\Uninstall {name}"; Filename: "{{uninstallexe}}"',
    ]
    if spec.desktop_icon:
        lines += [
            f'Name: "{{autodesktop}}\\{name}"; Filename: "{app_exe}"; Tasks: desktopicon',
            "",
            "[Tasks]",
            'Name: "desktopicon"; Description: "{cm:CreateDesktopIcon}"; '
            'GroupDescription: "{cm:AdditionalIcons}"; Flags: unchecked',
        ]

    lines += [
        "",
        "[Run]",
        f'Filename: "{app_exe}"; Description: "{{cm:LaunchProgram,{name}}}"; '
        "Flags: nowait postinstall skipifsilent",
    ]

    if spec.add_to_path:
        lines += [
            "",
            "[Registry]",
            f'Root: HKLM; Subkey: "{_ENV_KEY}"; ValueType: expandsz; ValueName: "Path"; '
            "ValueData: \"{olddata};{app}\"; Check: NeedsAddPath('{app}')",
        ]

    lines += ["", "[Code]"]
    if spec.add_to_path:
        lines += [
            "function NeedsAddPath(Param: string): boolean;",
            "var",
            "  OrigPath: string;",
            "begin",
            "  if not RegQueryStringValue(HKEY_LOCAL_MACHINE,"
            f" '{_ENV_KEY}', 'Path', OrigPath) then",
            "  begin",
            "    Result := True;",
            "    exit;",
            "  end;",
            "  Result := Pos(ExpandConstant(Param), OrigPath) = 0;",
            "end;",
            "",
        ]
    lines += [
        "function InitializeSetup(): Boolean;",
        "begin",
        "  Result := True;",
        "end;",
    ]

    return "\n".join(lines) + "\n"
