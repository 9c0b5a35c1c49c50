"""
Version specifier parsing and diff classification.

The classification only drives how a mismatch is displayed; it never decides
whether a dependency is out of sync (that is an exact string comparison in the
synchronizer).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rich.text import Text

RANGE_OPERATORS = ("^", "~")

DiffKind = Literal["major", "minor", "patch"]
OperatorChange = Literal["unchanged", "added", "removed", "changed"]

_KIND_STYLES: dict[str, str] = {
    "major": "red",
    "minor": "cyan",
    "patch": "green",
}


@dataclass(frozen=True)
class VersionSpec:
    operator: str
    segments: tuple[str, ...]

    @property
    def version(self) -> str:
        return ".".join(self.segments)


@dataclass(frozen=True)
class VersionDiff:
    old: VersionSpec
    new: VersionSpec
    index: int
    kind: DiffKind
    operator_change: OperatorChange

    @property
    def unchanged_segments(self) -> tuple[str, ...]:
        return self.new.segments[: self.index]

    @property
    def changed_segments(self) -> tuple[str, ...]:
        return self.new.segments[self.index :]


def parse_version_spec(raw: str) -> VersionSpec:
    """Split a specifier such as ``^1.2.3`` into its range operator and dotted segments."""
    text = raw.strip()
    operator = ""
    if text[:1] in RANGE_OPERATORS:
        operator = text[0]
        text = text[1:]
    segments = tuple(text.split(".")) if text else ()
    return VersionSpec(operator=operator, segments=segments)


def strip_range_operator(raw: str) -> str:
    return parse_version_spec(raw).version


def _operator_change(old: str, new: str) -> OperatorChange:
    if old == new:
        return "unchanged"
    if not old:
        return "added"
    if not new:
        return "removed"
    return "changed"


def classify_version_diff(old: str, new: str) -> VersionDiff:
    old_spec = parse_version_spec(old)
    new_spec = parse_version_spec(new)

    index = len(new_spec.segments)
    for i, part in enumerate(new_spec.segments):
        previous = old_spec.segments[i] if i < len(old_spec.segments) else None
        if part != previous:
            index = i
            break

    leading_zero = "0" in (old_spec.segments[:1] + new_spec.segments[:1])
    kind: DiffKind
    if index == 0 or leading_zero:
        kind = "major"
    elif index == 1:
        kind = "minor"
    else:
        kind = "patch"

    return VersionDiff(
        old=old_spec,
        new=new_spec,
        index=index,
        kind=kind,
        operator_change=_operator_change(old_spec.operator, new_spec.operator),
    )


def colorize_version_diff(old: str, new: str, *, highlight_range: bool = True) -> Text:
    """Render ``new`` with the part that differs from ``old`` highlighted.

    major (or anything before 1.0.0) = red, minor = cyan, patch = green. The range
    operator is yellow when it changed, gray otherwise.
    """
    diff = classify_version_diff(old, new)
    operator_style = "yellow" if highlight_range and diff.operator_change != "unchanged" else "bright_black"

    out = Text()
    out.append(diff.new.operator, style=operator_style)
    out.append(".".join(diff.unchanged_segments))
    if 0 < diff.index < len(diff.new.segments):
        out.append(".")
    out.append(".".join(diff.changed_segments).strip(), style=_KIND_STYLES[diff.kind])
    return out
