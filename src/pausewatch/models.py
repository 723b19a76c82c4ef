from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Generation(str, Enum):
    CURRENT = "current"
    PREVIOUS = "previous"
    PREVIOUS_PREVIOUS = "previous-previous"


class RunStatus(str, Enum):
    FIRST_RUN = "first-run"
    NO_NEW_PACKAGES = "no-new-packages"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class PackageRecord:
    name: str
    distribution: str


@dataclass(frozen=True)
class Snapshot:
    """One parsed index: package → record and distribution → packages."""

    packages: Mapping[str, PackageRecord]
    distributions: Mapping[str, tuple[str, ...]]
    text: str = field(default="", repr=False, compare=False)

    def distribution_of(self, name: str) -> str | None:
        record = self.packages.get(name)
        return record.distribution if record is not None else None

    def __len__(self) -> int:
        return len(self.packages)


@dataclass(frozen=True)
class NewnessSet:
    packages: frozenset[str] = frozenset()
    distributions: frozenset[str] = frozenset()

    @property
    def has_new_packages(self) -> bool:
        return bool(self.packages)


@dataclass(frozen=True, slots=True)
class PermissionEntry:
    package: str
    maintainer: str
    code: str
    line: str


@dataclass(frozen=True)
class Confusable:
    new_name: str
    new_dist: str | None
    other_name: str
    other_dist: str
    distance: int = 1

    category = "confusable"

    @property
    def sort_key(self) -> tuple[str, ...]:
        return (self.new_name, self.other_name)

    def __str__(self) -> str:
        return (
            f"{self.new_name} ({self.new_dist}) is {self.distance} edit(s) away from "
            f"{self.other_name} ({self.other_dist})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "new_name": self.new_name,
            "new_dist": self.new_dist,
            "other_name": self.other_name,
            "other_dist": self.other_dist,
            "distance": self.distance,
        }


@dataclass(frozen=True)
class NamespaceMismatch:
    name: str
    dist: str
    expected_prefix: str

    category = "namespace"

    @property
    def sort_key(self) -> tuple[str, ...]:
        return (self.name, self.dist)

    def __str__(self) -> str:
        return f"{self.name} ({self.dist}) is outside namespace {self.expected_prefix}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "name": self.name,
            "dist": self.dist,
            "expected_prefix": self.expected_prefix,
        }


@dataclass(frozen=True)
class BadPermission:
    maintainer_state: str
    raw_line: str
    package: str = ""
    code: str = ""

    category = "permission"

    @property
    def sort_key(self) -> tuple[str, ...]:
        return (self.package, self.maintainer_state, self.code)

    def __str__(self) -> str:
        return f"{self.maintainer_state} holds non-comaintainer permission: {self.raw_line}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "maintainer_state": self.maintainer_state,
            "package": self.package,
            "code": self.code,
            "raw_line": self.raw_line,
        }


WarningRecord = Confusable | NamespaceMismatch | BadPermission


@dataclass
class WatchResult:
    status: RunStatus
    newness: NewnessSet = field(default_factory=NewnessSet)
    confusables: list[Confusable] = field(default_factory=list)
    namespace_mismatches: list[NamespaceMismatch] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    @property
    def warnings(self) -> list[WarningRecord]:
        return [*self.confusables, *self.namespace_mismatches]

    def exit_code(self) -> int:
        if self.status is RunStatus.FIRST_RUN:
            return 3
        return 1 if self.warnings else 0

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "new_packages": len(self.newness.packages),
            "new_distributions": len(self.newness.distributions),
            "confusables": len(self.confusables),
            "namespace_mismatches": len(self.namespace_mismatches),
            "exit_code": self.exit_code(),
            **self.stats,
        }


@dataclass
class PermissionAudit:
    total: int = 0
    violations: list[BadPermission] = field(default_factory=list)

    @property
    def clean(self) -> int:
        return self.total - len(self.violations)

    def exit_code(self) -> int:
        return 1 if self.violations else 0
