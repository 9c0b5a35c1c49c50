from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence

from workspace_tools import (
    __version__,
    check_env,
    lint_changed,
    lint_file_name_case,
    lint_fix,
    post_checkout,
    prepare,
    sync_overrides,
    turbo_run,
)

COMMANDS: dict[str, tuple[Callable[[list[str] | None], int], str]] = {
    "check-env": (check_env.main, "Check node and pnpm versions."),
    "lint-changed": (lint_changed.main, "Lint files changed against the base branch."),
    "lint-file-name-case": (lint_file_name_case.main, "Check file names are kebab-case."),
    "lint-fix": (lint_fix.main, "Auto-fix lint problems in changed files."),
    "post-checkout": (post_checkout.main, "Lint the current branch name."),
    "prepare": (prepare.main, "Build workspace tools and install git hooks."),
    "sync-overrides": (sync_overrides.main, "Sync dependency versions with pnpm.overrides."),
    "turbo-run": (turbo_run.main, "Run a turbo task with failure hints."),
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workspace-tools",
        description="Developer-workflow commands for a pnpm monorepo.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    for name, (_, help_text) in COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args, rest = parser.parse_known_args(argv)
    if args.command is None:
        parser.print_help()
        return 2
    command_main, _ = COMMANDS[args.command]
    return command_main(rest)


if __name__ == "__main__":
    raise SystemExit(main())
