"""Lint the files changed on this branch relative to the base branch (CI entry point)."""

from __future__ import annotations

import argparse
import asyncio
import fnmatch
import os
import posixpath
import re
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Mapping

from rich.text import Text

from workspace_tools import git_ops
from workspace_tools.config import LintTask, WorkspaceConfig, find_repo_root, load_workspace_config
from workspace_tools.console import (
    configure_console_output,
    console,
    error,
    format_duration,
    info,
    log_with_box,
    success,
)
from workspace_tools.errors import CommandError, WorkspaceToolsError
from workspace_tools.process import run_command_async

MAX_LISTED_FILES = 10

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


class LintFailed(WorkspaceToolsError):
    def __init__(self, message: str, *, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def resolve_base_branch(config: WorkspaceConfig, env: Mapping[str, str]) -> str:
    return env.get("CHANGE_TARGET") or config.base_branch


def expand_braces(pattern: str) -> list[str]:
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    out: list[str] = []
    for alternative in match.group(1).split(","):
        out.extend(expand_braces(pattern[: match.start()] + alternative + pattern[match.end() :]))
    return out


def match_files(files: Sequence[str], patterns: Sequence[str]) -> list[str]:
    """Select files matching any pattern, anywhere in the tree (``**/<pattern>``)."""
    expanded = [p for pattern in patterns for p in expand_braces(pattern)]
    matched: list[str] = []
    for path in files:
        for pattern in expanded:
            if "/" not in pattern:
                hit = fnmatch.fnmatchcase(posixpath.basename(path), pattern)
            else:
                hit = fnmatch.fnmatchcase(path, pattern) or fnmatch.fnmatchcase(path, f"*/{pattern}")
            if hit:
                matched.append(path)
                break
    return matched


def describe_command(command: Sequence[str], files: Sequence[str]) -> Text:
    exe, *args = command
    listed = f"<...{len(files)} files>" if len(files) > MAX_LISTED_FILES else " ".join(files)
    out = Text("$ ", style="magenta")
    out.append(exe, style="bold magenta")
    for arg in args:
        out.append(f" {arg}", style="magenta")
    out.append(f" {listed}", style="green")
    return out


async def run_lint_task(
    task: LintTask,
    changed: Sequence[str],
    *,
    repo_root: Path,
    base_branch: str,
) -> None:
    files = match_files(changed, task.patterns)
    if not files:
        info(Text.assemble(Text("no files matched, skip ", style="yellow"), Text(task.name, style="bold magenta")))
        return

    command = list(task.command)
    console.print(describe_command(command, files))
    console.print()
    start = time.monotonic()
    try:
        await run_command_async([*command, *files], cwd=repo_root, echo=False)
    except CommandError as e:
        message = str(e)
        if len(files) > MAX_LISTED_FILES:
            message = message.replace(e.command, describe_command(command, files).plain)
        error(message)
        log_with_box(
            Text("Lint failed, run the fix command below locally!", style="red"),
            Text(f"ws-lint-fix {base_branch}", style="green"),
        )
        error("Changed files:\n" + "\n".join(files))
        raise LintFailed(f"{task.name} failed", exit_code=e.exit_code) from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    success(Text.assemble(f"{task.name} ", format_duration(elapsed_ms)))


async def lint_changed(config: WorkspaceConfig, *, base_branch: str) -> None:
    changed = await asyncio.to_thread(git_ops.changed_files, config.repo_root, base_branch=base_branch)
    # Linting only reads files, so the tasks can run side by side.
    await asyncio.gather(
        *(
            run_lint_task(task, changed, repo_root=config.repo_root, base_branch=base_branch)
            for task in config.lint_tasks
        )
    )


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    parser = argparse.ArgumentParser(
        prog="ws-lint-changed",
        description="Lint files changed between the base branch and HEAD.",
    )
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    args = parser.parse_args(argv)

    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        config = load_workspace_config(repo_root)
        base_branch = resolve_base_branch(config, os.environ)
        info(f"Base branch: {base_branch}")
        console.print()
        asyncio.run(lint_changed(config, base_branch=base_branch))
    except LintFailed as e:
        return e.exit_code
    except WorkspaceToolsError as e:
        error(str(e))
        return e.exit_code

    success("Lint passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
