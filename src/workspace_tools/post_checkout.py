"""git ``post-checkout`` hook: warn when the current branch name breaks the naming rules."""

from __future__ import annotations

import argparse
import os
import re
from pathlib import Path

from rich.text import Text

from workspace_tools import git_ops
from workspace_tools.config import BranchNameRules, find_repo_root, is_ci, load_workspace_config
from workspace_tools.console import configure_console_output, console, error, link
from workspace_tools.errors import WorkspaceToolsError


def is_branch_name_valid(branch: str, rules: BranchNameRules) -> bool:
    return bool(re.search(rules.ignored, branch) or re.search(rules.valid, branch))


def branch_name_warning(rules: BranchNameRules) -> Text:
    return Text.assemble(
        "The current branch name does not follow the ",
        link("branch naming rules", rules.guide_url),
        " and cannot be pushed! Rename it with: ",
        Text("git branch -m <new/branch/name>", style="green"),
        style="yellow",
    )


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    parser = argparse.ArgumentParser(prog="ws-post-checkout", description="Lint the current branch name.")
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    # git passes <prev-head> <new-head> <branch-flag>; they are not needed.
    parser.add_argument("hook_args", nargs="*", help=argparse.SUPPRESS)
    args = parser.parse_args(argv)

    if is_ci(os.environ):
        return 0

    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        config = load_workspace_config(repo_root)
        branch = git_ops.current_branch(repo_root)
    except WorkspaceToolsError as e:
        error(str(e))
        return 0

    if not is_branch_name_valid(branch, config.branch_name):
        console.print(branch_name_warning(config.branch_name))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
