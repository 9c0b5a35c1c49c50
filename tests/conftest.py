from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

ROOT_OVERRIDES = {
    "react": "18.2.0",
    "lodash": "4.17.21",
    "axios@<1": "0.27.2",
    "axios@1": "1.6.0",
    "core-js@<3": "2.6.12",
    "core-js@3": "3.33.0",
    "internal-ui": "workspace:*",
    "legacy-lib": "https://example.test/legacy-lib-1.0.0.tgz",
}


def _write_json(path: Path, obj: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


@pytest.fixture
def root_overrides() -> dict[str, str]:
    return dict(ROOT_OVERRIDES)


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[..., Path]:
    """Build a pnpm workspace under tmp_path; returns the repo root."""

    def _make(
        packages: dict[str, dict[str, Any]] | None = None,
        *,
        overrides: dict[str, str] | None = None,
        web_modules: dict[str, dict[str, Any]] | None = None,
        config_yaml: str | None = None,
    ) -> Path:
        root = tmp_path / "repo"
        root.mkdir(parents=True, exist_ok=True)
        _write_json(
            root / "package.json",
            {
                "name": "monorepo",
                "private": True,
                "packageManager": "pnpm@8.6.0",
                "pnpm": {"overrides": dict(ROOT_OVERRIDES) if overrides is None else overrides},
            },
        )
        (root / "pnpm-workspace.yaml").write_text("packages:\n  - 'packages/*'\n", encoding="utf-8")
        for name, manifest in (packages or {}).items():
            _write_json(root / "packages" / name / "package.json", {"name": name, **manifest})
        for name, web_module in (web_modules or {}).items():
            _write_json(root / "packages" / name / "web-module.json", web_module)
        if config_yaml is not None:
            (root / "workspace-tools.yaml").write_text(config_yaml, encoding="utf-8")
        return root

    return _make
