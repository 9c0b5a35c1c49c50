from __future__ import annotations

import asyncio
import os
import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from workspace_tools.console import echo_command
from workspace_tools.errors import CommandError

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def _child_env(env: Mapping[str, str] | None) -> dict[str, str]:
    merged = os.environ.copy()
    merged["FORCE_COLOR"] = "true"
    if env:
        merged.update(env)
    return merged


def run_command(
    argv: list[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    echo: bool = True,
) -> int:
    """Run a command with its output streams forwarded to ours."""
    if echo:
        echo_command(argv)
    try:
        proc = subprocess.run(argv, cwd=str(cwd), env=_child_env(env), check=False)
    except FileNotFoundError as e:
        raise CommandError(argv, returncode=127, stderr=str(e)) from e
    if proc.returncode != 0:
        raise CommandError(argv, returncode=proc.returncode)
    return proc.returncode


def get_output(argv: list[str], *, cwd: Path) -> str:
    try:
        proc = subprocess.run(
            argv,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise CommandError(argv, returncode=127, stderr=str(e)) from e
    if proc.returncode != 0:
        raise CommandError(argv, returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
    return proc.stdout


def capture_command(
    argv: list[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    echo: bool = True,
) -> CommandResult:
    """Run a command, streaming its stdout through while keeping a copy.

    stderr is forwarded untouched. Raises CommandError (with the captured stdout)
    when the command exits non-zero.
    """
    if echo:
        echo_command(argv)
    try:
        proc = subprocess.Popen(
            argv,
            cwd=str(cwd),
            env=_child_env(env),
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as e:
        raise CommandError(argv, returncode=127, stderr=str(e)) from e

    captured: list[str] = []
    assert proc.stdout is not None
    with proc.stdout:
        for line in proc.stdout:
            captured.append(line)
            sys.stdout.write(line)
            sys.stdout.flush()
    returncode = proc.wait()
    stdout = "".join(captured)
    if returncode != 0:
        raise CommandError(argv, returncode=returncode, stdout=stdout)
    return CommandResult(argv=list(argv), returncode=returncode, stdout=stdout, stderr="")


def has_output(argv: list[str], *, cwd: Path) -> bool:
    """Return True as soon as the command writes anything to stdout."""
    try:
        proc = subprocess.Popen(
            argv,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CommandError(argv, returncode=127, stderr=str(e)) from e

    assert proc.stdout is not None
    first = proc.stdout.read(1)
    if first:
        proc.kill()
        proc.communicate()
        return True

    _, stderr = proc.communicate()
    if proc.returncode != 0:
        raise CommandError(
            argv,
            returncode=proc.returncode,
            stderr=stderr.decode("utf-8", errors="replace"),
        )
    return False


async def run_async(argv: list[str], *, cwd: Path) -> CommandResult:
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CommandError(argv, returncode=127, stderr=str(e)) from e
    out, err = await proc.communicate()
    result = CommandResult(
        argv=list(argv),
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
    )
    if result.returncode != 0:
        raise CommandError(
            argv,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    return result


async def run_command_async(
    argv: list[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    echo: bool = True,
) -> int:
    """Async variant of run_command; output streams are inherited."""
    if echo:
        echo_command(argv)
    try:
        proc = await asyncio.create_subprocess_exec(*argv, cwd=str(cwd), env=_child_env(env))
    except FileNotFoundError as e:
        raise CommandError(argv, returncode=127, stderr=str(e)) from e
    returncode = await proc.wait()
    if returncode != 0:
        raise CommandError(argv, returncode=returncode)
    return returncode
