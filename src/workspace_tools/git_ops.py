from __future__ import annotations

import re
from pathlib import Path

from workspace_tools.process import CommandResult, get_output, has_output, run_async, run_command


def current_branch(repo_root: Path) -> str:
    return get_output(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_root).strip()


def local_branches(repo_root: Path) -> list[str]:
    current = get_output(["git", "branch", "--show-current"], cwd=repo_root).strip()
    out: list[str] = []
    for line in get_output(["git", "branch"], cwd=repo_root).splitlines():
        branch = line.removeprefix("* ").strip()
        if branch and branch != current:
            out.append(branch)
    return out


def changed_files(repo_root: Path, *, base_branch: str) -> list[str]:
    """Files changed on this branch relative to ``base_branch``, deletions excluded."""
    stdout = get_output(
        ["git", "diff", "--name-only", "--diff-filter=ACMR", f"{base_branch}...HEAD"],
        cwd=repo_root,
    )
    return [line for line in re.split(r"\r?\n", stdout.strip()) if line]


def fetch_branch(repo_root: Path, *, remote: str, branch: str) -> None:
    run_command(["git", "fetch", "-u", remote, f"{branch}:{branch}"], cwd=repo_root)


def has_staged_files(repo_root: Path) -> bool:
    return has_output(["git", "diff", "--name-only", "--cached"], cwd=repo_root)


async def git_add(repo_root: Path, path: str) -> CommandResult:
    return await run_async(["git", "add", path], cwd=repo_root)
