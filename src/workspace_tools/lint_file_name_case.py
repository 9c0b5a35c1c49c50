"""Reject file and directory names that are not kebab-case (lint-staged task)."""

from __future__ import annotations

import argparse
import os
import re
from collections.abc import Sequence
from pathlib import Path

from rich.text import Text

from workspace_tools.config import FileNameCaseRules, find_repo_root, load_workspace_config
from workspace_tools.console import configure_console_output, console, error
from workspace_tools.errors import WorkspaceToolsError

KEBAB_CASE_RE = re.compile(r"^([\da-z]+(-[\da-z]+)*)?(\.([\da-z]+(-[\da-z])*))*$")
_CAMEL_BOUNDARY_RE = re.compile(r"([a-z])([A-Z])")
_SEPARATOR_RE = re.compile(r"[\s_]+")


def to_kebab_case(name: str) -> str:
    name = _CAMEL_BOUNDARY_RE.sub(r"\1-\2", name)
    name = _SEPARATOR_RE.sub("-", name)
    return name.lower()


def path_exists_case_sensitive(path: Path) -> bool:
    try:
        return path.name in os.listdir(path.parent)
    except OSError:
        return False


def _is_ignored(path: Path, rules: FileNameCaseRules) -> bool:
    if path.name in rules.ignored_files:
        return True
    return any(part in path.parts for part in rules.ignored_paths)


def find_invalid_paths(paths: Sequence[Path], *, repo_root: Path, rules: FileNameCaseRules) -> list[Path]:
    """Return every non-kebab-case path prefix under ``repo_root``, sorted."""
    invalid: set[Path] = set()
    for path in paths:
        if _is_ignored(path, rules):
            continue
        absolute = path if path.is_absolute() else repo_root / path
        segments = Path(os.path.relpath(absolute, repo_root)).parts
        for index, segment in enumerate(segments):
            if not KEBAB_CASE_RE.match(segment):
                invalid.add(repo_root.joinpath(*segments[: index + 1]))
    return sorted(invalid)


def render_suggestion(path: Path) -> Text:
    corrected = path.with_name(to_kebab_case(path.name))
    return Text.assemble(
        Text(str(path), style="red"),
        " ",
        Text("->", style="yellow"),
        " ",
        Text(str(corrected), style="green"),
    )


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    parser = argparse.ArgumentParser(
        prog="ws-lint-file-name-case",
        description="Check that file and directory names are kebab-case.",
    )
    parser.add_argument("files", nargs="*", type=Path, help="Files to check (usually passed by lint-staged).")
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    args = parser.parse_args(argv)

    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        config = load_workspace_config(repo_root)
    except WorkspaceToolsError as e:
        error(str(e))
        return e.exit_code

    candidates = [(p if p.is_absolute() else Path.cwd() / p) for p in args.files]
    existing = [p.resolve() for p in candidates if path_exists_case_sensitive(p)]
    invalid = find_invalid_paths(existing, repo_root=repo_root, rules=config.file_name_case)
    if not invalid:
        return 0

    error("These file names are not kebab-case:")
    for path in invalid:
        console.print(render_suggestion(path))
    console.print()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
