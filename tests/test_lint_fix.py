from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from workspace_tools import lint_fix
from workspace_tools.config import load_workspace_config

MakeWorkspace = Callable[..., Path]


def test_lint_fix_command_substitutes_base_branch(make_workspace: MakeWorkspace) -> None:
    config = load_workspace_config(make_workspace())
    assert lint_fix.lint_fix_command(config, "develop") == [
        "lint-staged",
        "--no-stash",
        "--allow-empty",
        "--diff",
        "develop...HEAD",
        "-p",
        "false",
    ]


def test_main_fetches_runs_fixers_and_reports_staged_files(
    make_workspace: MakeWorkspace, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    root = make_workspace()
    calls: list[tuple[str, Any]] = []

    monkeypatch.setattr(
        lint_fix.git_ops,
        "fetch_branch",
        lambda repo_root, *, remote, branch: calls.append(("fetch", (remote, branch))),
    )

    def _fake_run(argv: list[str], *, cwd: Path, env: dict[str, str]) -> int:
        calls.append(("run", (argv[0], env)))
        return 0

    monkeypatch.setattr(lint_fix, "run_command", _fake_run)
    monkeypatch.setattr(lint_fix.git_ops, "has_staged_files", lambda repo_root: True)

    assert lint_fix.main(["develop", "--repo-root", str(root)]) == 0

    assert calls == [("fetch", ("origin", "develop")), ("run", ("lint-staged", {"LINT_FIX": "1"}))]
    assert "auto-fixed" in capsys.readouterr().err


def test_main_prompts_for_base_branch(
    make_workspace: MakeWorkspace, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    root = make_workspace()
    prompted: list[tuple[Path, str]] = []

    def _fake_prompt(repo_root: Path, *, default: str) -> str:
        prompted.append((repo_root, default))
        return "release/1.0"

    monkeypatch.setattr(lint_fix, "prompt_base_branch", _fake_prompt)
    monkeypatch.setattr(lint_fix.git_ops, "fetch_branch", lambda repo_root, *, remote, branch: None)
    monkeypatch.setattr(lint_fix, "run_command", lambda argv, *, cwd, env: 0)
    monkeypatch.setattr(lint_fix.git_ops, "has_staged_files", lambda repo_root: False)

    assert lint_fix.main(["--repo-root", str(root)]) == 0
    assert prompted == [(root.resolve(), "master")]
    assert "No lint errors" in capsys.readouterr().out
