from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from workspace_tools.errors import ConfigError

CONFIG_FILE_NAME = "workspace-tools.yaml"
_ROOT_MARKERS = ("pnpm-workspace.yaml", ".git")

_CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "RUN_ID",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "JENKINS_URL",
    "BUILDKITE",
    "CIRCLECI",
    "TEAMCITY_VERSION",
    "TF_BUILD",
)

_ALLOWED_KEYS = frozenset(
    {
        "base_branch",
        "branch_name",
        "exempt",
        "file_name_case",
        "lint_fix_command",
        "lint_tasks",
        "multi_version",
        "skip_cache_env",
    }
)

DEFAULT_LINT_FIX_COMMAND = (
    "lint-staged",
    "--no-stash",
    "--allow-empty",
    "--diff",
    "{base}...HEAD",
    "-p",
    "false",
)


@dataclass(frozen=True)
class MultiVersionRule:
    """Two incompatible major lines of one dependency, split at `threshold`."""

    name: str
    threshold: str
    below: str
    at_or_above: str


@dataclass(frozen=True)
class LintTask:
    name: str
    patterns: tuple[str, ...]
    command: tuple[str, ...]


@dataclass(frozen=True)
class BranchNameRules:
    valid: str = r"^(feature|chore|bugfix|hotfix|beta|release)(/[\w.#-]+)+$"
    # v1.1.1-fat-a style branches are created by release automation.
    ignored: str = r"(^master$)|(^v(\d+.){3})"
    guide_url: str = "https://xxx.yyy.com"


@dataclass(frozen=True)
class FileNameCaseRules:
    ignored_files: frozenset[str] = frozenset(
        {
            "README.md",
            "CHANGELOG.md",
            "LICENSE.txt",
            "CODEOWNERS",
            "Jenkinsfile",
            "pull_request_template.md",
        }
    )
    ignored_paths: tuple[str, ...] = ("__mocks__",)


DEFAULT_MULTI_VERSION: tuple[MultiVersionRule, ...] = (
    MultiVersionRule(name="axios", threshold="1.0.0", below="axios@<1", at_or_above="axios@1"),
    MultiVersionRule(name="core-js", threshold="3.0.0", below="core-js@<3", at_or_above="core-js@3"),
)


@dataclass(frozen=True)
class WorkspaceConfig:
    repo_root: Path
    overrides: Mapping[str, str]
    package_manager: str | None
    multi_version: tuple[MultiVersionRule, ...] = DEFAULT_MULTI_VERSION
    exempt: frozenset[str] = frozenset()
    base_branch: str = "master"
    lint_tasks: tuple[LintTask, ...] = ()
    lint_fix_command: tuple[str, ...] = DEFAULT_LINT_FIX_COMMAND
    branch_name: BranchNameRules = field(default_factory=BranchNameRules)
    file_name_case: FileNameCaseRules = field(default_factory=FileNameCaseRules)
    skip_cache_env: str = "WORKSPACE_SKIP_CACHE"


def find_repo_root(start: Path | None = None) -> Path:
    cur = (start or Path.cwd()).resolve()
    for candidate in [cur, *cur.parents]:
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    raise ConfigError(
        "Could not find workspace root "
        "(expected pnpm-workspace.yaml or .git in a parent directory)."
    )


def is_ci(env: Mapping[str, str] | None = None) -> bool:
    env = os.environ if env is None else env
    if env.get("BUILD_ENV") == "CI":
        return True
    for name in _CI_ENV_VARS:
        value = env.get(name)
        if value is not None and value.lower() not in {"", "0", "false"}:
            return True
    return False


def load_json_object(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Missing file: {path}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse JSON in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a JSON object in {path}, got {type(raw).__name__}.")
    return raw


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(raw).__name__}.")
    return raw


def _require_str(value: Any, *, field_name: str, path: Path) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Expected non-empty string for {field_name} in {path}.")
    return value


def _parse_str_list(value: Any, *, field_name: str, path: Path) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigError(f"Expected list for {field_name} in {path}.")
    return tuple(
        _require_str(item, field_name=f"{field_name}[{idx}]", path=path)
        for idx, item in enumerate(value)
    )


def _parse_multi_version(value: Any, *, path: Path) -> tuple[MultiVersionRule, ...]:
    if not isinstance(value, dict):
        raise ConfigError(f"Expected mapping for multi_version in {path}.")
    rules: list[MultiVersionRule] = []
    for name, spec in value.items():
        if not isinstance(spec, dict):
            raise ConfigError(f"Expected mapping for multi_version.{name} in {path}.")
        unknown = set(spec) - {"threshold", "below", "at_or_above"}
        if unknown:
            raise ConfigError(
                f"Unknown keys in multi_version.{name} in {path}: {', '.join(sorted(unknown))}."
            )
        rules.append(
            MultiVersionRule(
                name=_require_str(name, field_name="multi_version key", path=path),
                threshold=_require_str(
                    spec.get("threshold"), field_name=f"multi_version.{name}.threshold", path=path
                ),
                below=_require_str(spec.get("below"), field_name=f"multi_version.{name}.below", path=path),
                at_or_above=_require_str(
                    spec.get("at_or_above"), field_name=f"multi_version.{name}.at_or_above", path=path
                ),
            )
        )
    return tuple(rules)


def _parse_lint_tasks(value: Any, *, path: Path) -> tuple[LintTask, ...]:
    if not isinstance(value, list):
        raise ConfigError(f"Expected list for lint_tasks in {path}.")
    tasks: list[LintTask] = []
    for idx, item in enumerate(value):
        if not isinstance(item, dict):
            raise ConfigError(f"Expected mapping for lint_tasks[{idx}] in {path}.")
        name = _require_str(item.get("name"), field_name=f"lint_tasks[{idx}].name", path=path)
        patterns = _parse_str_list(item.get("patterns"), field_name=f"lint_tasks[{idx}].patterns", path=path)
        command = _parse_str_list(item.get("command"), field_name=f"lint_tasks[{idx}].command", path=path)
        if not patterns or not command:
            raise ConfigError(f"lint_tasks[{idx}] in {path} needs non-empty patterns and command.")
        tasks.append(LintTask(name=name, patterns=patterns, command=command))
    return tuple(tasks)


def _parse_branch_name(value: Any, *, path: Path) -> BranchNameRules:
    if not isinstance(value, dict):
        raise ConfigError(f"Expected mapping for branch_name in {path}.")
    defaults = BranchNameRules()
    return BranchNameRules(
        valid=_require_str(value.get("valid", defaults.valid), field_name="branch_name.valid", path=path),
        ignored=_require_str(value.get("ignored", defaults.ignored), field_name="branch_name.ignored", path=path),
        guide_url=_require_str(
            value.get("guide_url", defaults.guide_url), field_name="branch_name.guide_url", path=path
        ),
    )


def _parse_file_name_case(value: Any, *, path: Path) -> FileNameCaseRules:
    if not isinstance(value, dict):
        raise ConfigError(f"Expected mapping for file_name_case in {path}.")
    defaults = FileNameCaseRules()
    ignored_files = value.get("ignored_files")
    ignored_paths = value.get("ignored_paths")
    return FileNameCaseRules(
        ignored_files=(
            frozenset(_parse_str_list(ignored_files, field_name="file_name_case.ignored_files", path=path))
            if ignored_files is not None
            else defaults.ignored_files
        ),
        ignored_paths=(
            _parse_str_list(ignored_paths, field_name="file_name_case.ignored_paths", path=path)
            if ignored_paths is not None
            else defaults.ignored_paths
        ),
    )


def _read_root_package(repo_root: Path) -> tuple[dict[str, str], str | None]:
    path = repo_root / "package.json"
    root_pkg = load_json_object(path)
    pnpm = root_pkg.get("pnpm") or {}
    if not isinstance(pnpm, dict):
        raise ConfigError(f"Invalid `pnpm` field (expected object) in {path}.")
    overrides = pnpm.get("overrides") or {}
    if not isinstance(overrides, dict):
        raise ConfigError(f"Invalid `pnpm.overrides` (expected object) in {path}.")
    for key, value in overrides.items():
        if not isinstance(value, str):
            raise ConfigError(f"Invalid `pnpm.overrides.{key}` (expected string) in {path}.")

    package_manager = root_pkg.get("packageManager")
    if package_manager is not None and not isinstance(package_manager, str):
        raise ConfigError(f"Invalid `packageManager` (expected string) in {path}.")
    return dict(overrides), package_manager


def load_workspace_config(repo_root: Path) -> WorkspaceConfig:
    """Build the immutable configuration for one process run."""
    overrides, package_manager = _read_root_package(repo_root)

    config_path = repo_root / CONFIG_FILE_NAME
    data = _load_yaml_mapping(config_path) if config_path.exists() else {}
    unknown = set(data) - _ALLOWED_KEYS
    if unknown:
        raise ConfigError(
            f"Unknown keys in {config_path}: {', '.join(sorted(unknown))}. "
            f"Allowed: {', '.join(sorted(_ALLOWED_KEYS))}."
        )

    kwargs: dict[str, Any] = {}
    if "multi_version" in data:
        kwargs["multi_version"] = _parse_multi_version(data["multi_version"], path=config_path)
    if "exempt" in data:
        kwargs["exempt"] = frozenset(_parse_str_list(data["exempt"], field_name="exempt", path=config_path))
    if "base_branch" in data:
        kwargs["base_branch"] = _require_str(data["base_branch"], field_name="base_branch", path=config_path)
    if "lint_tasks" in data:
        kwargs["lint_tasks"] = _parse_lint_tasks(data["lint_tasks"], path=config_path)
    if "lint_fix_command" in data:
        kwargs["lint_fix_command"] = _parse_str_list(
            data["lint_fix_command"], field_name="lint_fix_command", path=config_path
        )
    if "branch_name" in data:
        kwargs["branch_name"] = _parse_branch_name(data["branch_name"], path=config_path)
    if "file_name_case" in data:
        kwargs["file_name_case"] = _parse_file_name_case(data["file_name_case"], path=config_path)
    if "skip_cache_env" in data:
        kwargs["skip_cache_env"] = _require_str(data["skip_cache_env"], field_name="skip_cache_env", path=config_path)

    return WorkspaceConfig(
        repo_root=repo_root,
        overrides=MappingProxyType(overrides),
        package_manager=package_manager,
        **kwargs,
    )
