"""Run a turbo task and turn a failure into an actionable reproduction command."""

from __future__ import annotations

import argparse
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from rich.text import Text

from workspace_tools.config import find_repo_root, is_ci
from workspace_tools.console import configure_console_output, console, error, log_with_box
from workspace_tools.errors import CommandError, WorkspaceToolsError
from workspace_tools.process import capture_command, strip_ansi

SKIP_CACHE_FLAG = "[skip cache]"
_FAILED_TASK_RE = re.compile(r"\nFailed: {4}(?P<package>[\w\-@/]+)#(?P<script>[\w:-]+)")
_RULE = "-" * 70


class TurboTaskFailed(WorkspaceToolsError):
    pass


@dataclass(frozen=True)
class FailedTask:
    package: str
    script: str

    @property
    def output_prefix(self) -> str:
        return f"{self.package}:{self.script}: "

    @property
    def reproduce_command(self) -> str:
        return f"pnpm --filter {self.package} {self.script}"


def parse_failed_task(stdout: str) -> FailedTask | None:
    match = _FAILED_TASK_RE.search(stdout.rstrip())
    if match is None:
        return None
    return FailedTask(package=match.group("package"), script=match.group("script"))


def failed_task_output(stdout: str, task: FailedTask) -> str:
    """Lines the failing task printed, with turbo's ``<pkg>:<script>: `` prefix removed."""
    lines = [
        line[line.index(" ") + 1 :]
        for line in stdout.split("\n")
        if strip_ansi(line).startswith(task.output_prefix)
    ]
    return "\n".join(lines)


def report_failure(task: FailedTask, stdout: str, *, env: Mapping[str, str]) -> None:
    error(
        Text.assemble(
            "Script ",
            Text(task.script, style="yellow"),
            " of package ",
            Text(task.package, style="yellow"),
            " failed!",
        )
    )
    console.print(Text(f"{' task output ':-^70}\n", style="yellow"))
    console.print(Text.from_ansi(failed_task_output(stdout, task)))
    console.print(Text(f"\n{_RULE}\n", style="yellow"))
    log_with_box(
        Text("Run the command below locally to reproduce the error", style="red"),
        Text(task.reproduce_command, style="green"),
    )

    if is_ci(env):
        pr_title = env.get("CHANGE_TITLE")
        if pr_title and SKIP_CACHE_FLAG not in pr_title:
            console.print()
            log_with_box(
                Text("If it passes locally, rename the PR like this to skip the CI cache", style="red"),
                Text(f"{pr_title} {SKIP_CACHE_FLAG}", style="green"),
            )


def run_turbo_task(
    script: str,
    *args: str,
    repo_root: Path,
    env: Mapping[str, str] | None = None,
) -> None:
    env = os.environ if env is None else env
    try:
        capture_command(["turbo", "run", script, *args], cwd=repo_root)
    except CommandError as e:
        task = parse_failed_task(e.stdout)
        if task is None:
            raise
        report_failure(task, e.stdout, env=env)
        raise TurboTaskFailed(f"{task.package}#{task.script} failed") from e


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    parser = argparse.ArgumentParser(
        prog="ws-turbo-run",
        description="Run a turbo task. Unrecognized arguments are passed through to turbo.",
        allow_abbrev=False,
    )
    parser.add_argument("task", help="turbo pipeline task name, e.g. build.")
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    args, turbo_args = parser.parse_known_args(argv)

    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        run_turbo_task(args.task, *turbo_args, repo_root=repo_root)
    except TurboTaskFailed:
        return 1
    except WorkspaceToolsError as e:
        error(str(e))
        return e.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
