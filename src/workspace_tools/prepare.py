"""``prepare`` lifecycle hook: build workspace tooling and wire up local git."""

from __future__ import annotations

import argparse
import asyncio
import os
from collections.abc import Awaitable
from pathlib import Path
from typing import Any, Mapping

from workspace_tools.config import WorkspaceConfig, find_repo_root, is_ci, load_workspace_config
from workspace_tools.console import configure_console_output, error
from workspace_tools.errors import WorkspaceToolsError
from workspace_tools.process import run_command_async
from workspace_tools.turbo_run import TurboTaskFailed, run_turbo_task

BUILD_TOOLS_TASK = "build:tool"


def build_tools_args(config: WorkspaceConfig, env: Mapping[str, str]) -> list[str]:
    """Extra ``turbo run build:tool`` arguments."""
    args = ["--output-logs", "errors-only"]
    if config.skip_cache_env in env:
        args.append("--force")
    return args


def git_setup_commands(env: Mapping[str, str]) -> list[list[str]]:
    if is_ci(env):
        return []
    return [
        ["simple-git-hooks"],
        ["git", "config", "--local", "include.path", "../.gitconfig"],
    ]


async def prepare(config: WorkspaceConfig, env: Mapping[str, str]) -> None:
    tasks: list[Awaitable[Any]] = [
        asyncio.to_thread(
            run_turbo_task,
            BUILD_TOOLS_TASK,
            *build_tools_args(config, env),
            repo_root=config.repo_root,
            env=env,
        ),
        *(run_command_async(argv, cwd=config.repo_root) for argv in git_setup_commands(env)),
    ]
    await asyncio.gather(*tasks)


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    parser = argparse.ArgumentParser(
        prog="ws-prepare",
        description="Build workspace tools and install git hooks (runs on `pnpm install`).",
    )
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    args = parser.parse_args(argv)

    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        config = load_workspace_config(repo_root)
        asyncio.run(prepare(config, os.environ))
    except TurboTaskFailed:
        # The failing package and a reproduction command were already printed.
        return 1
    except WorkspaceToolsError as e:
        error(str(e))
        return e.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
