from workspace_tools.config import WorkspaceConfig, find_repo_root, load_workspace_config
from workspace_tools.errors import (
    CommandError,
    ConfigError,
    SyncConfigurationError,
    WorkspaceToolsError,
)
from workspace_tools.lock_table import VersionLockTable, qualified_specifier
from workspace_tools.versions import (
    VersionDiff,
    VersionSpec,
    classify_version_diff,
    colorize_version_diff,
    parse_version_spec,
)
from workspace_tools.workspace import (
    OverrideFile,
    PackageManifest,
    WorkspacePackage,
    find_workspace_packages,
)

__version__ = "0.1.0"

__all__ = [
    "CommandError",
    "ConfigError",
    "OverrideFile",
    "PackageManifest",
    "SyncConfigurationError",
    "VersionDiff",
    "VersionLockTable",
    "VersionSpec",
    "WorkspaceConfig",
    "WorkspacePackage",
    "WorkspaceToolsError",
    "__version__",
    "classify_version_diff",
    "colorize_version_diff",
    "find_repo_root",
    "find_workspace_packages",
    "load_workspace_config",
    "parse_version_spec",
    "qualified_specifier",
]
