from __future__ import annotations

from collections.abc import Iterable

from pausewatch.models import NamespaceMismatch, Snapshot

NAMESPACE_SEPARATOR = "::"


def expected_prefix(distribution: str) -> str:
    return distribution.replace("-", NAMESPACE_SEPARATOR)


def check_namespace(name: str, distribution: str) -> NamespaceMismatch | None:
    """Literal prefix check; ``Foo-Bar`` therefore also accepts ``Foo::Barley``."""
    prefix = expected_prefix(distribution)
    if name.startswith(prefix):
        return None
    return NamespaceMismatch(name=name, dist=distribution, expected_prefix=prefix)


def validate_namespaces(names: Iterable[str], snapshot: Snapshot) -> list[NamespaceMismatch]:
    mismatches: list[NamespaceMismatch] = []
    for name in sorted(names):
        distribution = snapshot.distribution_of(name)
        if distribution is None:
            continue
        mismatch = check_namespace(name, distribution)
        if mismatch is not None:
            mismatches.append(mismatch)
    return mismatches
