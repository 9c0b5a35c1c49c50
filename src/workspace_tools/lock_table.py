from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType
from typing import Mapping

from packaging.version import InvalidVersion, Version

from workspace_tools.config import MultiVersionRule, WorkspaceConfig
from workspace_tools.errors import SyncConfigurationError
from workspace_tools.versions import strip_range_operator

_VERBATIM_PREFIXES = ("http", "workspace:")


def is_verbatim_reference(locked: str) -> bool:
    """URL and workspace-local references are used as-is, never range-wrapped."""
    return locked.startswith(_VERBATIM_PREFIXES)


def qualified_specifier(locked: str) -> str:
    if is_verbatim_reference(locked):
        return locked
    return f"^{locked}"


class VersionLockTable:
    """The single canonical version (or range) each workspace dependency must declare."""

    def __init__(
        self,
        overrides: Mapping[str, str],
        *,
        multi_version: Iterable[MultiVersionRule] = (),
        exempt: Iterable[str] = (),
    ) -> None:
        self._overrides: Mapping[str, str] = MappingProxyType(dict(overrides))
        self._multi_version: Mapping[str, MultiVersionRule] = MappingProxyType(
            {rule.name: rule for rule in multi_version}
        )
        self._exempt = frozenset(exempt)
        self._keys = frozenset(self._overrides) | frozenset(self._multi_version)

    @classmethod
    def from_config(cls, config: WorkspaceConfig) -> VersionLockTable:
        return cls(config.overrides, multi_version=config.multi_version, exempt=config.exempt)

    @property
    def overrides(self) -> Mapping[str, str]:
        return self._overrides

    def keys(self) -> frozenset[str]:
        return self._keys

    def __contains__(self, name: object) -> bool:
        return name in self._keys

    def is_multi_version(self, name: str) -> bool:
        return name in self._multi_version

    def is_exempt(self, name: str) -> bool:
        return name in self._exempt

    def resolve(self, name: str, declared_version: str) -> str:
        """Return the locked value for ``name``.

        Multi-version dependencies resolve to the bucket matching the currently
        declared version; everything else resolves to its override entry.
        """
        rule = self._multi_version.get(name)
        if rule is None:
            try:
                return self._overrides[name]
            except KeyError:
                raise SyncConfigurationError(
                    f"{name} is not locked in the root package.json pnpm.overrides.",
                    dependency=name,
                ) from None

        bucket = rule.below if self._is_below(rule, declared_version) else rule.at_or_above
        locked = self._overrides.get(bucket)
        if locked is None:
            raise SyncConfigurationError(
                f"{name} resolves to override key {bucket!r}, "
                "which is missing from the root package.json pnpm.overrides.",
                dependency=name,
            )
        return locked

    @staticmethod
    def _is_below(rule: MultiVersionRule, declared_version: str) -> bool:
        stripped = strip_range_operator(declared_version)
        try:
            return Version(stripped) < Version(rule.threshold)
        except InvalidVersion as e:
            raise SyncConfigurationError(
                f"Cannot compare {rule.name}@{declared_version!r} against {rule.threshold}: {e}",
                dependency=rule.name,
            ) from e
