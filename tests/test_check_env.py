from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from workspace_tools.check_env import (
    ToolchainState,
    check_environment,
    find_mismatch,
    parse_user_agent,
    required_pm_version,
)
from workspace_tools.errors import ConfigError

MakeWorkspace = Callable[..., Path]

_PNPM_AGENT = "pnpm/8.6.0 npm/? node/v18.17.0 linux x64"


def test_parse_user_agent() -> None:
    assert parse_user_agent(_PNPM_AGENT) == ("pnpm", "8.6.0")
    assert parse_user_agent("npm/9.6.7 node/v18.17.0 darwin arm64") == ("npm", "9.6.7")
    assert parse_user_agent(None) == ("", "")


def test_required_pm_version_strips_integrity_suffix() -> None:
    assert required_pm_version("pnpm@8.6.0") == "8.6.0"
    assert required_pm_version("pnpm@8.6.0+sha256.abcdef") == "8.6.0"
    with pytest.raises(ConfigError, match="packageManager"):
        required_pm_version(None)


def test_find_mismatch_checks_node_then_package_manager() -> None:
    ok = ToolchainState(node_version="v18.17.0", pm_name="pnpm", pm_version="8.6.0")
    assert find_mismatch(ok, required_node="18.17.0", required_pm_version="8.6.0") is None

    wrong_node = ToolchainState(node_version="v20.1.0", pm_name="npm", pm_version="9.0.0")
    message = find_mismatch(wrong_node, required_node="v18.17.0", required_pm_version="8.6.0")
    assert message is not None
    assert ".nvmrc" in message.plain

    wrong_pm = ToolchainState(node_version="v18.17.0", pm_name="yarn", pm_version="1.22.19")
    message = find_mismatch(wrong_pm, required_node="v18.17.0", required_pm_version="8.6.0")
    assert message is not None
    assert "yarn" in message.plain

    wrong_pnpm = ToolchainState(node_version="v18.17.0", pm_name="pnpm", pm_version="7.33.0")
    message = find_mismatch(wrong_pnpm, required_node="v18.17.0", required_pm_version="8.6.0")
    assert message is not None
    assert "corepack enable" in message.plain


def test_check_environment(make_workspace: MakeWorkspace, capsys: pytest.CaptureFixture[str]) -> None:
    root = make_workspace()
    (root / ".nvmrc").write_text("v18.17.0\n", encoding="utf-8")

    env = {"npm_config_user_agent": _PNPM_AGENT}
    assert check_environment(root, env=env, node_version="v18.17.0\n") == 0

    assert check_environment(root, env={**env, "CI": "true"}, node_version="v16.20.0") == 1
    captured = capsys.readouterr()
    assert "--frozen-lockfile" in captured.out
    assert "ERROR" in captured.err
    assert "v16.20.0" in captured.err


def test_check_environment_requires_nvmrc(make_workspace: MakeWorkspace) -> None:
    root = make_workspace()
    with pytest.raises(ConfigError, match=".nvmrc"):
        check_environment(root, env={}, node_version="v18.17.0")
