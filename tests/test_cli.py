from __future__ import annotations

import pytest

from workspace_tools import cli, console


def test_dispatches_remaining_args_to_command(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[list[str] | None] = []

    def _fake_main(argv: list[str] | None = None) -> int:
        seen.append(argv)
        return 5

    monkeypatch.setitem(cli.COMMANDS, "sync-overrides", (_fake_main, "help"))

    assert cli.main(["sync-overrides", "--fix", "--repo-root", "/tmp/repo"]) == 5
    assert seen == [["--fix", "--repo-root", "/tmp/repo"]]


def test_subcommand_help_is_left_to_the_command(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[list[str] | None] = []
    monkeypatch.setitem(cli.COMMANDS, "turbo-run", (lambda argv=None: seen.append(argv) or 0, "help"))

    assert cli.main(["turbo-run", "-h"]) == 0
    assert seen == [["-h"]]


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 2
    out = capsys.readouterr().out
    for name in cli.COMMANDS:
        assert name in out


def test_format_duration_thresholds() -> None:
    assert console.format_duration(250).plain == "250ms"
    assert str(console.format_duration(250).style) == "green"
    assert console.format_duration(4500).plain == "4.500s"
    assert str(console.format_duration(4500).style) == "yellow"
    assert str(console.format_duration(12000).style) == "red"
