from __future__ import annotations

import pytest

from ._utils import iter_source_files, matches_prefix, package_root, parse_imports


@pytest.mark.parametrize("layer", ["core", "platform", "git", "github", "sync", "installer"])
def test_lower_layers_do_not_import_cli(layer: str) -> None:
    root = package_root()
    offenders: list[str] = []

    for file_path in iter_source_files(root / layer):
        rel = file_path.relative_to(root)
        for item in parse_imports(file_path):
            if matches_prefix(item.module, "forkctl.cli"):
                offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, f"{layer} -> cli dependency violations:\n" + "\n".join(offenders)


def test_sync_and_installer_are_independent() -> None:
    root = package_root()
    forbidden = {"sync": "forkctl.installer", "installer": "forkctl.sync"}
    offenders: list[str] = []

    for layer, prefix in forbidden.items():
        for file_path in iter_source_files(root / layer):
            rel = file_path.relative_to(root)
            for item in parse_imports(file_path):
                if matches_prefix(item.module, prefix):
                    offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, "sync <-> installer coupling:\n" + "\n".join(offenders)
