"""Verify the local toolchain before dependencies are installed (``preinstall`` hook)."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from rich.text import Text

from workspace_tools.config import find_repo_root, is_ci, load_workspace_config
from workspace_tools.console import configure_console_output, console, error, warn
from workspace_tools.errors import ConfigError, WorkspaceToolsError
from workspace_tools.process import get_output

FROZEN_LOCKFILE_DOCS_URL = "https://pnpm.io/cli/install#--frozen-lockfile"


@dataclass(frozen=True)
class ToolchainState:
    node_version: str
    pm_name: str
    pm_version: str


def parse_user_agent(user_agent: str | None) -> tuple[str, str]:
    """Split ``pnpm/8.6.0 npm/? node/v18.17.0 linux x64`` into ``("pnpm", "8.6.0")``."""
    spec = (user_agent or "").split(" ")[0]
    name, sep, version = spec.rpartition("/")
    if not sep:
        return "", spec
    return name, version


def required_pm_version(package_manager: str | None) -> str:
    if not package_manager or "@" not in package_manager:
        raise ConfigError("Root package.json must declare `packageManager` as `pnpm@<version>`.")
    version = package_manager.rsplit("@", 1)[1]
    return version.split("+", 1)[0]


def _normalize_node_version(version: str) -> str:
    version = version.strip()
    return version if version.startswith("v") else f"v{version}"


def find_mismatch(
    current: ToolchainState,
    *,
    required_node: str,
    required_pm_version: str,
) -> Text | None:
    if _normalize_node_version(current.node_version) != _normalize_node_version(required_node):
        return Text.assemble(
            "Current node ",
            Text(current.node_version, style="green"),
            " does not match the version required by .nvmrc ",
            Text(required_node, style="green"),
            "; switch node to ",
            Text(required_node, style="green"),
            ".",
        )
    if current.pm_name != "pnpm":
        return Text.assemble(
            "Dependencies are being installed with ",
            Text(current.pm_name or "an unknown package manager", style="green"),
            "; switch to ",
            Text("pnpm", style="green"),
            ".",
        )
    if current.pm_version != required_pm_version:
        return Text.assemble(
            "Current pnpm ",
            Text(current.pm_version, style="green"),
            " does not match the required version ",
            Text(required_pm_version, style="green"),
            "; run `corepack enable` to switch pnpm to ",
            Text(required_pm_version, style="green"),
            ".",
        )
    return None


def check_environment(repo_root: Path, *, env: Mapping[str, str], node_version: str) -> int:
    config = load_workspace_config(repo_root)
    nvmrc = repo_root / ".nvmrc"
    try:
        required_node = nvmrc.read_text(encoding="utf-8").strip()
    except FileNotFoundError as e:
        raise ConfigError(f"Missing file: {nvmrc}") from e
    required_pm = required_pm_version(config.package_manager)

    pm_name, pm_version = parse_user_agent(env.get("npm_config_user_agent"))
    current = ToolchainState(node_version=node_version.strip(), pm_name=pm_name, pm_version=pm_version)

    if is_ci(env):
        console.print(
            Text(
                "CI runs pnpm with --frozen-lockfile to check the lockfile matches the one generated locally.",
                style="yellow",
            )
        )
        console.print(Text.assemble("See: ", Text(FROZEN_LOCKFILE_DOCS_URL, style="green")))

    mismatch = find_mismatch(current, required_node=required_node, required_pm_version=required_pm)
    if mismatch is None:
        return 0

    error(mismatch)
    warn(f"Current environment: node {current.node_version}, {current.pm_name}@{current.pm_version}")
    warn(f"Required environment: node {required_node}, pnpm@{required_pm}")
    warn("Read the project docs to set up your development environment.")
    return 1


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    parser = argparse.ArgumentParser(
        prog="ws-check-env",
        description="Check node and pnpm versions against .nvmrc and packageManager.",
    )
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    args = parser.parse_args(argv)

    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        node_version = get_output(["node", "--version"], cwd=repo_root)
        return check_environment(repo_root, env=os.environ, node_version=node_version)
    except WorkspaceToolsError as e:
        error(str(e))
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
