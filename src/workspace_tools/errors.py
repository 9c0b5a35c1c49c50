from __future__ import annotations

from pathlib import Path


class WorkspaceToolsError(RuntimeError):
    exit_code = 1


class ConfigError(WorkspaceToolsError):
    pass


class CommandError(WorkspaceToolsError):
    def __init__(
        self,
        argv: list[str],
        *,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip()
        message = f"Command failed (exit {returncode}): {self.command}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)

    @property
    def command(self) -> str:
        return " ".join(self.argv)

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode or 1


class SyncConfigurationError(WorkspaceToolsError):
    """A dependency that the lock table does not govern the way the file expects."""

    def __init__(
        self,
        message: str,
        *,
        dependency: str,
        path: Path | str | None = None,
        exit_code: int = 1,
    ) -> None:
        super().__init__(message)
        self.dependency = dependency
        self.path = path
        self.exit_code = exit_code
