"""
Keep every workspace package on the dependency versions locked in the root
``package.json`` ``pnpm.overrides`` table.

Two passes run over the workspace:

- the manifest pass checks each package's ``package.json`` runtime, peer and
  development dependencies and re-wraps locked values in a caret range;
- the override-file pass checks each package's ``web-module.json`` (used by the
  secondary build target), where every dependency must be sanctioned by the
  lock table and is pinned to the raw override value.

Usage:

    ws-sync-overrides          # report drift, exit 1 if any
    ws-sync-overrides --fix    # rewrite files and `git add` them
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from rich.text import Text

from workspace_tools import git_ops
from workspace_tools.config import WorkspaceConfig, find_repo_root, load_workspace_config
from workspace_tools.console import (
    configure_console_output,
    console,
    error,
    log_with_box,
    success,
)
from workspace_tools.errors import SyncConfigurationError, WorkspaceToolsError
from workspace_tools.lock_table import VersionLockTable, qualified_specifier
from workspace_tools.versions import colorize_version_diff, strip_range_operator
from workspace_tools.workspace import (
    OverrideFile,
    PackageManifest,
    WorkspacePackage,
    find_workspace_packages,
)

EXIT_FAILURE = 1
EXIT_UNSANCTIONED = 2
FIX_COMMAND = "ws-sync-overrides --fix"
OVERRIDES_DOCS_URL = "https://pnpm.io/package_json#pnpmoverrides"

PassName = Literal["manifest", "override_file"]


@dataclass(frozen=True)
class UpdateRecord:
    dependency: str
    old: str
    new: str


@dataclass
class FileScan:
    pass_name: PassName
    rel_path: str
    document: PackageManifest | OverrideFile
    records: list[UpdateRecord] = field(default_factory=list)
    errors: list[SyncConfigurationError] = field(default_factory=list)


@dataclass
class SyncReport:
    scans: list[FileScan]
    fix: bool
    staged: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[SyncConfigurationError]:
        return [err for scan in self.scans for err in scan.errors]

    @property
    def updates(self) -> dict[str, list[UpdateRecord]]:
        return {scan.rel_path: scan.records for scan in self.scans if scan.records}

    @property
    def exit_code(self) -> int:
        errors = self.errors
        if errors:
            return errors[0].exit_code
        if self.updates and not self.fix:
            return EXIT_FAILURE
        return 0


def sync_manifest(
    manifest: PackageManifest,
    table: VersionLockTable,
    *,
    fix: bool,
    rel_path: str,
) -> tuple[list[UpdateRecord], list[SyncConfigurationError]]:
    """Compare a package.json against the lock table.

    Locked values are written into the in-memory manifest only when ``fix`` is set.
    """
    records: list[UpdateRecord] = []
    errors: list[SyncConfigurationError] = []
    for _, deps in manifest.dependency_maps():
        for name, current in list(deps.items()):
            if name not in table or table.is_exempt(name):
                continue
            try:
                locked = table.resolve(name, strip_range_operator(current))
            except SyncConfigurationError as e:
                e.path = rel_path
                e.exit_code = EXIT_FAILURE
                errors.append(e)
                continue
            new = qualified_specifier(locked)
            if current == new:
                continue
            records.append(UpdateRecord(dependency=name, old=current, new=new))
            if fix:
                deps[name] = new
    return records, errors


def sync_override_file(
    override_file: OverrideFile,
    table: VersionLockTable,
    *,
    fix: bool,
    rel_path: str,
) -> tuple[list[UpdateRecord], list[SyncConfigurationError]]:
    """Compare a web-module.json against the lock table.

    Every dependency is checked even after an error so one run surfaces all of them.
    """
    records: list[UpdateRecord] = []
    errors: list[SyncConfigurationError] = []
    for _, deps in override_file.dependency_maps():
        for name, current in list(deps.items()):
            if table.is_multi_version(name):
                errors.append(
                    SyncConfigurationError(
                        f"{name} is locked to several versions across the workspace "
                        "and must not be pinned to a single version here.",
                        dependency=name,
                        path=rel_path,
                        exit_code=EXIT_FAILURE,
                    )
                )
                continue
            if table.is_exempt(name):
                continue
            if name not in table.overrides:
                errors.append(
                    SyncConfigurationError(
                        f"{name} is not locked in the root package.json pnpm.overrides.",
                        dependency=name,
                        path=rel_path,
                        exit_code=EXIT_UNSANCTIONED,
                    )
                )
                continue
            locked = table.resolve(name, current)
            if current == locked:
                continue
            records.append(UpdateRecord(dependency=name, old=current, new=locked))
            if fix:
                deps[name] = locked
    return records, errors


def _rel(path: Path, repo_root: Path) -> str:
    return path.resolve().relative_to(repo_root.resolve()).as_posix()


async def _scan_manifest(
    pkg: WorkspacePackage, table: VersionLockTable, *, repo_root: Path, fix: bool
) -> FileScan:
    manifest = await asyncio.to_thread(PackageManifest.load, pkg.manifest_path)
    rel_path = _rel(pkg.manifest_path, repo_root)
    records, errors = sync_manifest(manifest, table, fix=fix, rel_path=rel_path)
    return FileScan(
        pass_name="manifest",
        rel_path=rel_path,
        document=manifest,
        records=records,
        errors=errors,
    )


async def _scan_override_file(
    pkg: WorkspacePackage, table: VersionLockTable, *, repo_root: Path, fix: bool
) -> FileScan | None:
    path = pkg.override_file_path
    if not await asyncio.to_thread(path.is_file):
        return None
    override_file = await asyncio.to_thread(OverrideFile.load, path)
    rel_path = _rel(path, repo_root)
    records, errors = sync_override_file(override_file, table, fix=fix, rel_path=rel_path)
    return FileScan(
        pass_name="override_file",
        rel_path=rel_path,
        document=override_file,
        records=records,
        errors=errors,
    )


async def scan_workspace(
    packages: Sequence[WorkspacePackage],
    table: VersionLockTable,
    *,
    repo_root: Path,
    fix: bool,
) -> list[FileScan]:
    """Scan every package concurrently; manifest scans come first, each pass in path order."""
    manifest_scans, override_scans = await asyncio.gather(
        asyncio.gather(*(_scan_manifest(p, table, repo_root=repo_root, fix=fix) for p in packages)),
        asyncio.gather(*(_scan_override_file(p, table, repo_root=repo_root, fix=fix) for p in packages)),
    )
    return [*manifest_scans, *(scan for scan in override_scans if scan is not None)]


async def stage_files(repo_root: Path, paths: Sequence[str]) -> list[str]:
    staged: list[str] = []
    for path in paths:
        # git cannot run several `git add` processes against one index at once.
        await git_ops.git_add(repo_root, path)
        staged.append(path)
    return staged


async def sync_overrides(config: WorkspaceConfig, *, fix: bool) -> SyncReport:
    repo_root = config.repo_root
    table = VersionLockTable.from_config(config)
    packages = await asyncio.to_thread(find_workspace_packages, repo_root)
    report = SyncReport(scans=await scan_workspace(packages, table, repo_root=repo_root, fix=fix), fix=fix)

    if report.errors or not fix:
        return report

    changed = [scan for scan in report.scans if scan.records]
    await asyncio.gather(*(asyncio.to_thread(scan.document.write) for scan in changed))
    report.staged = await stage_files(repo_root, [scan.rel_path for scan in changed])
    return report


def print_drift(updates: dict[str, list[UpdateRecord]]) -> None:
    error(
        "Dependency versions are locked by pnpm.overrides in the root package.json; "
        "update the following dependencies:"
    )
    for rel_path, records in updates.items():
        console.print()
        console.print(Text(rel_path, style="underline"))
        for record in records:
            console.print(
                Text.assemble(
                    f"  {record.dependency}: ",
                    Text(f"{record.old} ->", style="dim"),
                    " ",
                    colorize_version_diff(record.old, record.new),
                )
            )
    console.print()
    message = Text.assemble(
        Text(FIX_COMMAND, style="magenta"),
        "\n\nRead more: ",
        Text(OVERRIDES_DOCS_URL, style="green"),
    )
    log_with_box(Text("Run the auto-fix command below locally!", style="red"), message)


def print_errors(errors: Sequence[SyncConfigurationError]) -> None:
    for err in errors:
        location = f"{err.path}: " if err.path else ""
        error(f"{location}{err}")


def present_report(report: SyncReport) -> int:
    if report.errors:
        print_errors(report.errors)
        return report.exit_code

    updates = report.updates
    if report.fix:
        if report.staged:
            success(f"Synced {len(report.staged)} file(s) with pnpm.overrides and staged them.")
        else:
            success("All dependency versions match pnpm.overrides.")
        return 0

    if updates:
        print_drift(updates)
        return report.exit_code

    success("All dependency versions match pnpm.overrides.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ws-sync-overrides",
        description="Sync workspace dependency versions with the root package.json pnpm.overrides.",
    )
    parser.add_argument("--fix", action="store_true", help="Rewrite drifted files and stage them with git.")
    parser.add_argument("--repo-root", type=Path, help="Workspace root (auto-detected if omitted).")
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_console_output()
    args = build_parser().parse_args(argv)
    try:
        repo_root = args.repo_root.resolve() if args.repo_root else find_repo_root()
        config = load_workspace_config(repo_root)
        report = asyncio.run(sync_overrides(config, fix=args.fix))
    except WorkspaceToolsError as e:
        error(str(e))
        return e.exit_code
    return present_report(report)


if __name__ == "__main__":
    raise SystemExit(main())
