from __future__ import annotations

import sys
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

console = Console(highlight=False, soft_wrap=True)
error_console = Console(stderr=True, highlight=False, soft_wrap=True)


def _enable_console_backslashreplace(stream: Any) -> None:
    """Configure stream error handling to backslash escapes when supported."""
    reconfigure = getattr(stream, "reconfigure", None)
    if not callable(reconfigure):
        return
    try:
        if str(getattr(stream, "errors", "")).lower() == "backslashreplace":
            return
        reconfigure(errors="backslashreplace")
    except Exception:
        return


def configure_console_output() -> None:
    """Configure stdout and stderr for resilient console output."""
    _enable_console_backslashreplace(sys.stdout)
    _enable_console_backslashreplace(sys.stderr)


def _badge(label: str, style: str) -> Text:
    return Text(f" {label} ", style=style)


def info(message: str | Text) -> None:
    console.print(Text.assemble(Text("ℹ", style="cyan"), " ", message))


def success(message: str | Text) -> None:
    console.print(Text.assemble(Text("✔", style="green"), " ", message))


def warn(message: str | Text) -> None:
    error_console.print(Text.assemble(_badge("WARN", "black on yellow"), " ", message))


def error(message: str | Text) -> None:
    error_console.print(Text.assemble(_badge("ERROR", "white on red"), " ", message))


def echo_command(argv: list[str]) -> None:
    console.print(Text(f"$ {' '.join(argv)}", style="dim"))


def log_with_box(title: str | Text, message: str | Text) -> None:
    body = Text.assemble(title, "\n\n", message, justify="center")
    console.print(
        Panel.fit(body, border_style="yellow", padding=1),
        justify="center",
    )
    console.print()


def format_duration(duration_ms: int) -> Text:
    if duration_ms < 3000:
        return Text(f"{duration_ms}ms", style="green")
    if duration_ms < 10000:
        return Text(f"{duration_ms / 1000:.3f}s", style="yellow")
    return Text(f"{duration_ms / 1000:.3f}s", style="red")


def link(title: str, url: str) -> Text:
    return Text(title, style=f"link {url}")
