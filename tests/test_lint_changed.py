from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

import pytest

from workspace_tools import lint_changed
from workspace_tools.config import load_workspace_config
from workspace_tools.errors import CommandError

MakeWorkspace = Callable[..., Path]


def test_expand_braces() -> None:
    assert lint_changed.expand_braces("*.{js,ts}") == ["*.js", "*.ts"]
    assert lint_changed.expand_braces("{a,b}/*.{x,y}") == ["a/*.x", "a/*.y", "b/*.x", "b/*.y"]
    assert lint_changed.expand_braces("*.css") == ["*.css"]


def test_match_files_matches_basenames_and_nested_paths() -> None:
    files = [
        "src/app.ts",
        "src/components/button.tsx",
        "styles/site.less",
        "README.md",
        "packages/web/src/index.js",
    ]
    assert lint_changed.match_files(files, ["*.{ts,tsx}"]) == ["src/app.ts", "src/components/button.tsx"]
    assert lint_changed.match_files(files, ["web/src/*.js"]) == ["packages/web/src/index.js"]
    assert lint_changed.match_files(files, ["*.less", "*.md"]) == ["styles/site.less", "README.md"]
    assert lint_changed.match_files(files, ["*.vue"]) == []


def test_describe_command_elides_long_file_lists() -> None:
    few = lint_changed.describe_command(["eslint", "--fix"], ["a.ts", "b.ts"])
    assert few.plain == "$ eslint --fix a.ts b.ts"

    many = lint_changed.describe_command(["eslint"], [f"f{i}.ts" for i in range(11)])
    assert many.plain == "$ eslint <...11 files>"


def test_resolve_base_branch_prefers_change_target(make_workspace: MakeWorkspace) -> None:
    config = load_workspace_config(make_workspace())
    assert lint_changed.resolve_base_branch(config, {}) == "master"
    assert lint_changed.resolve_base_branch(config, {"CHANGE_TARGET": "release/2.0"}) == "release/2.0"


def test_lint_changed_runs_only_tasks_with_matches(
    make_workspace: MakeWorkspace, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = make_workspace(
        config_yaml="""
lint_tasks:
  - name: eslint
    patterns: ["*.{js,ts}"]
    command: [eslint]
  - name: stylelint
    patterns: ["*.less"]
    command: [stylelint]
""",
    )
    config = load_workspace_config(root)
    monkeypatch.setattr(
        lint_changed.git_ops, "changed_files", lambda repo_root, *, base_branch: ["src/a.ts", "docs/b.md"]
    )
    commands: list[list[str]] = []

    async def _fake_run(argv: list[str], *, cwd: Path, env: object = None, echo: bool = True) -> int:
        commands.append(argv)
        return 0

    monkeypatch.setattr(lint_changed, "run_command_async", _fake_run)

    asyncio.run(lint_changed.lint_changed(config, base_branch="master"))

    assert commands == [["eslint", "src/a.ts"]]


def test_failed_lint_task_propagates_exit_code(
    make_workspace: MakeWorkspace, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    root = make_workspace(
        config_yaml="lint_tasks:\n  - name: eslint\n    patterns: ['*.ts']\n    command: [eslint]\n",
    )
    monkeypatch.delenv("CHANGE_TARGET", raising=False)
    monkeypatch.setattr(lint_changed.git_ops, "changed_files", lambda repo_root, *, base_branch: ["src/a.ts"])

    async def _failing_run(argv: list[str], *, cwd: Path, env: object = None, echo: bool = True) -> int:
        raise CommandError(argv, returncode=3)

    monkeypatch.setattr(lint_changed, "run_command_async", _failing_run)

    assert lint_changed.main(["--repo-root", str(root)]) == 3
    captured = capsys.readouterr()
    assert "ws-lint-fix master" in captured.out
    assert "src/a.ts" in captured.err
