from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator

from rapidfuzz.distance import DamerauLevenshtein

from pausewatch import config
from pausewatch.models import Confusable, Snapshot

logger = logging.getLogger(__name__)


def edit_distance(a: str, b: str, *, max_distance: int | None = None) -> int:
    """Damerau-Levenshtein distance with unit-cost insert/delete/substitute/transpose.

    With ``max_distance`` set, any distance above it is reported as
    ``max_distance + 1``.
    """
    if max_distance is not None and max_distance < 0:
        raise ValueError("max_distance must be >= 0")
    return DamerauLevenshtein.distance(a, b, score_cutoff=max_distance)


class ConfusableScanner:
    """Finds current package names exactly ``distance`` edits from a new name.

    Names are bucketed by length once; a candidate whose length differs from
    the new name by more than ``distance`` cannot be within ``distance`` edits
    and is never compared.
    """

    def __init__(self, snapshot: Snapshot, *, distance: int = config.CONFUSABLE_DISTANCE) -> None:
        if distance < 1:
            raise ValueError("distance must be >= 1")
        self.snapshot = snapshot
        self.distance = distance
        buckets: dict[int, list[str]] = defaultdict(list)
        for name in snapshot.packages:
            buckets[len(name)].append(name)
        self._buckets: dict[int, list[str]] = {
            length: sorted(names) for length, names in buckets.items()
        }

    def candidates(self, name: str) -> Iterator[str]:
        """Current names inside the length window of ``name``, in sorted order."""
        low = max(0, len(name) - self.distance)
        high = len(name) + self.distance
        return heapq.merge(
            *(self._buckets.get(length, ()) for length in range(low, high + 1))
        )

    def scan_name(self, name: str) -> list[Confusable]:
        own_dist = self.snapshot.distribution_of(name)
        found: list[Confusable] = []
        for other in self.candidates(name):
            if other == name:
                continue
            other_dist = self.snapshot.packages[other].distribution
            if own_dist is not None and other_dist == own_dist:
                continue
            if edit_distance(name, other, max_distance=self.distance) == self.distance:
                found.append(
                    Confusable(
                        new_name=name,
                        new_dist=own_dist,
                        other_name=other,
                        other_dist=other_dist,
                        distance=self.distance,
                    )
                )
        return found

    def scan(self, names: Iterable[str]) -> list[Confusable]:
        ordered = sorted(set(names))
        warnings: list[Confusable] = []
        for name in ordered:
            warnings.extend(self.scan_name(name))
        logger.debug("Scanned %d new names, %d confusable pairs", len(ordered), len(warnings))
        return sorted(warnings, key=lambda warning: warning.sort_key)


def find_confusables(
    names: Iterable[str],
    snapshot: Snapshot,
    *,
    distance: int = config.CONFUSABLE_DISTANCE,
) -> list[Confusable]:
    return ConfusableScanner(snapshot, distance=distance).scan(names)
