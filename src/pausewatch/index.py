from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from pausewatch.distname import ReleaseNamer
from pausewatch.models import PackageRecord, Snapshot
from pausewatch.utils import skip_header

logger = logging.getLogger(__name__)


def iter_records(lines: Iterable[str]) -> Iterator[tuple[str, str, str]]:
    """Yield ``(package, version, release)`` for every well-formed index line."""
    for line in skip_header(lines):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != 3:
            logger.debug("Skipping malformed index line: %r", line)
            continue
        package, version, release = fields
        yield package, version, release


class IndexParser:
    def __init__(self, namer: ReleaseNamer | None = None) -> None:
        self.namer = namer if namer is not None else ReleaseNamer()

    def parse(self, text: str) -> Snapshot:
        packages: dict[str, PackageRecord] = {}
        # dict keys double as an insertion-ordered set
        distributions: dict[str, dict[str, None]] = {}
        skipped = 0
        for package, _version, release in iter_records(text.splitlines()):
            dist = self.namer.resolve(release)
            if dist is None:
                skipped += 1
                continue
            packages[package] = PackageRecord(name=package, distribution=dist)
            distributions.setdefault(dist, {})[package] = None
        logger.debug(
            "Parsed %d packages in %d distributions (%d unresolvable releases skipped)",
            len(packages),
            len(distributions),
            skipped,
        )
        return Snapshot(
            packages=packages,
            distributions={dist: tuple(names) for dist, names in distributions.items()},
            text=text,
        )


def parse_index(text: str, namer: ReleaseNamer | None = None) -> Snapshot:
    return IndexParser(namer).parse(text)


def count_packages(text: str) -> int:
    """Distinct package names listed in ``text``, without resolving releases."""
    return len({package for package, _version, _release in iter_records(text.splitlines())})
