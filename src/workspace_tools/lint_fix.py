"""Auto-fix lint problems in the files this branch changed."""

from __future__ import annotations

import argparse
from pathlib import Path

from rich.prompt import Prompt
from rich.text import Text

from workspace_tools import git_ops
from workspace_tools.config import WorkspaceConfig, find_repo_root, load_workspace_config
from workspace_tools.console import configure_console_output, console, error, success, warn
from workspace_tools.errors import WorkspaceToolsError
from workspace_tools.process import run_command


def prompt_base_branch(repo_root: Path, *, default: str) -> str:
    branches = git_ops.local_branches(repo_root)
    if default not in branches:
        branches.append(default)
    return Prompt.ask("Which branch will this be merged into?", choices=branches, default=default)


def lint_fix_command(config: WorkspaceConfig, base_branch: str) -> list[str]:
    return [part.replace("{base}", base_branch) for part in config.lint_fix_command]


def lint_fix(config: WorkspaceConfig, *, base_branch: str) -> bool:
    """Run the fixers; return True when something was staged (i.e. auto-fixed)."""
    repo_root = config.repo_root
    warn(Text.assemble("Updating local ", Text(base_branch, style="green"), " to the latest remote code..."))
    git_ops.fetch_branch(repo_root, remote="origin", branch=base_branch)
    run_command(lint_fix_command(config, base_branch), cwd=repo_root, env={"LINT_FIX": "1"})
    return git_ops.has_staged_files(repo_root)


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    parser = argparse.ArgumentParser(
        prog="ws-lint-fix",
        description="Fetch the base branch and auto-fix lint problems in changed files.",
    )
    parser.add_argument("base_branch", nargs="?", help="Branch this work will be merged into.")
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    args = parser.parse_args(argv)

    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        config = load_workspace_config(repo_root)
        base_branch = args.base_branch or prompt_base_branch(repo_root, default=config.base_branch)
        fixed = lint_fix(config, base_branch=base_branch)
    except WorkspaceToolsError as e:
        error(str(e))
        return e.exit_code

    console.print()
    if fixed:
        warn("Commit the files that were auto-fixed!")
    else:
        success("No lint errors found locally!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
