from __future__ import annotations

import json
from pathlib import Path

import pytest

from workspace_tools.errors import ConfigError
from workspace_tools.workspace import OverrideFile, PackageManifest, find_workspace_packages


def _write_json(path: Path, obj: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def _package(root: Path, rel: str) -> None:
    _write_json(root / rel / "package.json", {"name": rel.rsplit("/", 1)[-1]})


def test_find_workspace_packages_honours_globs_and_negations(tmp_path: Path) -> None:
    _write_json(tmp_path / "package.json", {"name": "root"})
    (tmp_path / "pnpm-workspace.yaml").write_text(
        "packages:\n  - 'apps/*'\n  - 'packages/**'\n  - '!packages/legacy/*'\n",
        encoding="utf-8",
    )
    _package(tmp_path, "apps/web")
    _package(tmp_path, "packages/ui")
    _package(tmp_path, "packages/legacy/old")
    _package(tmp_path, "packages/ui/node_modules/dep")
    (tmp_path / "apps" / "no-manifest").mkdir(parents=True)

    dirs = [p.dir.relative_to(tmp_path.resolve()).as_posix() for p in find_workspace_packages(tmp_path)]

    assert dirs == [".", "apps/web", "packages/ui"]


def test_find_workspace_packages_without_workspace_file_is_root_only(tmp_path: Path) -> None:
    _write_json(tmp_path / "package.json", {"name": "root"})
    packages = find_workspace_packages(tmp_path)
    assert [p.dir for p in packages] == [tmp_path.resolve()]


def test_find_workspace_packages_rejects_malformed_workspace_file(tmp_path: Path) -> None:
    _write_json(tmp_path / "package.json", {"name": "root"})
    (tmp_path / "pnpm-workspace.yaml").write_text("packages: apps/*\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="list of globs"):
        find_workspace_packages(tmp_path)


def test_manifest_round_trip_preserves_unknown_fields_and_order(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    _write_json(
        path,
        {
            "name": "web",
            "version": "1.0.0",
            "devDependencies": {"lodash": "^4.17.20"},
            "scripts": {"build": "vite build"},
            "dependencies": {"react": "^17.0.2"},
            "description": "café",
        },
    )

    manifest = PackageManifest.load(path)
    assert manifest.name == "web"
    assert [key for key, _ in manifest.dependency_maps()] == ["dependencies", "devDependencies"]

    assert manifest.dependencies is not None
    manifest.dependencies["react"] = "^18.2.0"
    manifest.write()

    text = path.read_text(encoding="utf-8")
    assert text.endswith("}\n")
    assert '\n    "name": "web",' in text
    assert "café" in text
    document = list(manifest.to_document())
    assert document == ["name", "version", "devDependencies", "scripts", "dependencies", "description"]
    assert '"react": "^18.2.0"' in text


def test_override_file_ignores_peer_dependencies(tmp_path: Path) -> None:
    path = tmp_path / "web-module.json"
    _write_json(
        path,
        {
            "dependencies": {"react": "18.2.0"},
            "peerDependencies": {"vue": "3.3.0"},
        },
    )
    override_file = OverrideFile.load(path)
    assert [key for key, _ in override_file.dependency_maps()] == ["dependencies"]
    assert override_file.extra == {"peerDependencies": {"vue": "3.3.0"}}


def test_invalid_dependency_map_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    _write_json(path, {"dependencies": {"react": 18}})
    with pytest.raises(ConfigError, match="dependencies"):
        PackageManifest.load(path)


def test_manifest_that_is_not_utf8_is_a_config_error(tmp_path: Path) -> None:
    path = tmp_path / "package.json"
    path.write_bytes(b'{"name": "w\xff"}')
    with pytest.raises(ConfigError, match="package.json"):
        PackageManifest.load(path)
