from __future__ import annotations

import fnmatch
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Iterator, TypeVar

import yaml

from workspace_tools.errors import ConfigError

WORKSPACE_FILE_NAME = "pnpm-workspace.yaml"
MANIFEST_FILE_NAME = "package.json"
OVERRIDE_FILE_NAME = "web-module.json"

_D = TypeVar("_D", bound="_DependencyDocument")


@dataclass(frozen=True)
class WorkspacePackage:
    dir: Path

    @property
    def manifest_path(self) -> Path:
        return self.dir / MANIFEST_FILE_NAME

    @property
    def override_file_path(self) -> Path:
        return self.dir / OVERRIDE_FILE_NAME


def _load_workspace_globs(repo_root: Path) -> list[str]:
    path = repo_root / WORKSPACE_FILE_NAME
    if not path.exists():
        return []
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}") from e
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(raw).__name__}.")
    packages = raw.get("packages") or []
    if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
        raise ConfigError(f"Expected `packages` to be a list of globs in {path}.")
    return packages


def _is_excluded(rel: str, negations: list[str]) -> bool:
    if "node_modules" in rel.split("/"):
        return True
    return any(
        fnmatch.fnmatchcase(rel, pattern) or fnmatch.fnmatchcase(rel + "/", pattern)
        for pattern in negations
    )


def find_workspace_packages(repo_root: Path) -> list[WorkspacePackage]:
    """List the root package plus every package matched by pnpm-workspace.yaml."""
    repo_root = repo_root.resolve()
    globs = _load_workspace_globs(repo_root)
    includes = [g.strip().rstrip("/") for g in globs if not g.startswith("!")]
    negations = [g[1:].strip().rstrip("/") for g in globs if g.startswith("!")]

    dirs: set[Path] = set()
    if (repo_root / MANIFEST_FILE_NAME).exists():
        dirs.add(repo_root)

    for pattern in includes:
        for candidate in repo_root.glob(pattern):
            if not candidate.is_dir() or not (candidate / MANIFEST_FILE_NAME).is_file():
                continue
            rel = candidate.relative_to(repo_root).as_posix()
            if _is_excluded(rel, negations):
                continue
            dirs.add(candidate)

    return [WorkspacePackage(dir=d) for d in sorted(dirs)]


def _load_json_document(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse JSON in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a JSON object in {path}, got {type(raw).__name__}.")
    return raw


def _dependency_map(value: Any, *, key: str, path: Path) -> dict[str, str] | None:
    if value is None:
        return None
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ConfigError(f"Invalid `{key}` (expected an object of strings) in {path}.")
    return value


@dataclass
class _DependencyDocument:
    """JSON document with named dependency maps; other fields ride along untouched."""

    FIELDS: ClassVar[tuple[tuple[str, str], ...]] = ()

    path: Path
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: tuple[str, ...] = ()

    @classmethod
    def load(cls: type[_D], path: Path) -> _D:
        document = _load_json_document(path)
        attrs = {attr: _dependency_map(document.get(key), key=key, path=path) for key, attr in cls.FIELDS}
        named = {key for key, _ in cls.FIELDS}
        extra = {k: v for k, v in document.items() if k not in named}
        return cls(path=path, extra=extra, key_order=tuple(document), **attrs)

    def dependency_maps(self) -> Iterator[tuple[str, dict[str, str]]]:
        for key, attr in self.FIELDS:
            deps = getattr(self, attr)
            if deps is not None:
                yield key, deps

    def to_document(self) -> dict[str, Any]:
        attr_by_key = dict(self.FIELDS)
        out: dict[str, Any] = {}
        for key in self.key_order:
            if key in attr_by_key:
                value = getattr(self, attr_by_key[key])
                if value is not None:
                    out[key] = value
            elif key in self.extra:
                out[key] = self.extra[key]
        for key, attr in self.FIELDS:
            value = getattr(self, attr)
            if key not in out and value is not None:
                out[key] = value
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    def write(self) -> None:
        write_json_file(self.path, self.to_document())


@dataclass
class PackageManifest(_DependencyDocument):
    # Runtime first, then peer, then development: the order drift is reported in.
    FIELDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("dependencies", "dependencies"),
        ("peerDependencies", "peer_dependencies"),
        ("devDependencies", "dev_dependencies"),
    )

    dependencies: dict[str, str] | None = None
    peer_dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = None

    @property
    def name(self) -> str | None:
        name = self.extra.get("name")
        return name if isinstance(name, str) else None


@dataclass
class OverrideFile(_DependencyDocument):
    """Per-package ``web-module.json`` consumed by the secondary build target."""

    FIELDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("dependencies", "dependencies"),
        ("devDependencies", "dev_dependencies"),
    )

    dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = None


def write_json_file(path: Path, document: dict[str, Any]) -> None:
    path.write_text(json.dumps(document, indent=4, ensure_ascii=False) + "\n", encoding="utf-8")
