from __future__ import annotations

from pausewatch.models import NewnessSet, Snapshot


def diff(current: Snapshot, previous: Snapshot) -> NewnessSet:
    """Packages and distributions present in ``current`` but not in ``previous``."""
    return NewnessSet(
        packages=frozenset(current.packages.keys() - previous.packages.keys()),
        distributions=frozenset(current.distributions.keys() - previous.distributions.keys()),
    )
