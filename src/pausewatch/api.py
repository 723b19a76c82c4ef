from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pausewatch import config
from pausewatch.config import Settings
from pausewatch.confusables import ConfusableScanner
from pausewatch.diff import diff
from pausewatch.distname import ReleaseNamer
from pausewatch.exceptions import FetchError, SnapshotError
from pausewatch.fetch import IndexFetcher
from pausewatch.index import IndexParser, count_packages
from pausewatch.models import PermissionAudit, RunStatus, Snapshot, WatchResult
from pausewatch.namespaces import validate_namespaces
from pausewatch.permissions import PermissionAuditor
from pausewatch.snapshots import PERMISSIONS_KEY, SnapshotStorage, SnapshotStore

logger = logging.getLogger(__name__)


def analyze(
    current: Snapshot,
    previous: Snapshot,
    *,
    distance: int = config.CONFUSABLE_DISTANCE,
) -> WatchResult:
    """Diff two snapshots and run both name checks over the new packages."""
    newness = diff(current, previous)
    stats = {
        "current_packages": len(current.packages),
        "previous_packages": len(previous.packages),
        "current_distributions": len(current.distributions),
    }
    if not newness.has_new_packages:
        logger.info("No new packages")
        return WatchResult(status=RunStatus.NO_NEW_PACKAGES, newness=newness, stats=stats)
    logger.info(
        "%d new packages, %d new distributions",
        len(newness.packages),
        len(newness.distributions),
    )
    scanner = ConfusableScanner(current, distance=distance)
    return WatchResult(
        status=RunStatus.COMPLETED,
        newness=newness,
        confusables=scanner.scan(newness.packages),
        namespace_mismatches=validate_namespaces(newness.packages, current),
        stats=stats,
    )


def _open_store(storage: SnapshotStorage) -> tuple[SnapshotStore, bool]:
    namer = ReleaseNamer()
    store = storage.load(IndexParser(namer))
    first_run = not store.has_baseline
    if not first_run:
        store.rotate()
    return store, first_run


def _finish_watch(
    store: SnapshotStore,
    storage: SnapshotStorage,
    text: str,
    *,
    first_run: bool,
    distance: int,
) -> WatchResult:
    current = store.ingest_current(text)
    storage.commit(store)
    logger.debug("Release name cache: %s", store.parser.namer.cache_info())
    if first_run:
        logger.warning("No baseline snapshot existed; stored the current index, re-run later")
        return WatchResult(
            status=RunStatus.FIRST_RUN,
            stats={"current_packages": len(current.packages)},
        )
    previous = store.previous
    if previous is None:
        raise SnapshotError("Rotation left no previous snapshot to diff against")
    return analyze(current, previous, distance=distance)


def _source(url: str, local: Path | None) -> str | Path:
    return local if local is not None else url


async def watch_index_async(
    settings: Settings,
    *,
    index_file: Path | None = None,
    fetcher: IndexFetcher | None = None,
) -> WatchResult:
    with SnapshotStorage(settings.data_dir) as storage:
        store, first_run = _open_store(storage)
        async with fetcher or IndexFetcher(
            timeout=settings.http_timeout, retries=settings.http_retries
        ) as client:
            try:
                text = await client.obtain(_source(settings.index_url, index_file))
            except FetchError:
                if not first_run:
                    store.rollback()
                raise
        return _finish_watch(
            store,
            storage,
            text,
            first_run=first_run,
            distance=settings.confusable_distance,
        )


def _audit(settings: Settings, storage: SnapshotStorage, text: str) -> PermissionAudit:
    storage.write(PERMISSIONS_KEY, text)
    return PermissionAuditor(settings.flagged_maintainers).audit_text(text)


async def audit_permissions_async(
    settings: Settings,
    *,
    perms_file: Path | None = None,
    fetcher: IndexFetcher | None = None,
) -> PermissionAudit:
    async with fetcher or IndexFetcher(
        timeout=settings.http_timeout, retries=settings.http_retries
    ) as client:
        text = await client.obtain(_source(settings.permissions_url, perms_file))
    with SnapshotStorage(settings.data_dir) as storage:
        return _audit(settings, storage, text)


async def run_all_async(
    settings: Settings,
    *,
    index_file: Path | None = None,
    perms_file: Path | None = None,
    fetcher: IndexFetcher | None = None,
) -> tuple[WatchResult, PermissionAudit]:
    """Fetch both files concurrently, then run the index watch and the audit."""
    with SnapshotStorage(settings.data_dir) as storage:
        store, first_run = _open_store(storage)
        async with fetcher or IndexFetcher(
            timeout=settings.http_timeout, retries=settings.http_retries
        ) as client:
            try:
                index_text, perms_text = await client.fetch_many(
                    _source(settings.index_url, index_file),
                    _source(settings.permissions_url, perms_file),
                )
            except FetchError:
                if not first_run:
                    store.rollback()
                raise
        watch = _finish_watch(
            store,
            storage,
            index_text,
            first_run=first_run,
            distance=settings.confusable_distance,
        )
        return watch, _audit(settings, storage, perms_text)


def watch_index(settings: Settings, *, index_file: Path | None = None) -> WatchResult:
    return asyncio.run(watch_index_async(settings, index_file=index_file))


def audit_permissions(settings: Settings, *, perms_file: Path | None = None) -> PermissionAudit:
    return asyncio.run(audit_permissions_async(settings, perms_file=perms_file))


def run_all(
    settings: Settings,
    *,
    index_file: Path | None = None,
    perms_file: Path | None = None,
) -> tuple[WatchResult, PermissionAudit]:
    return asyncio.run(run_all_async(settings, index_file=index_file, perms_file=perms_file))


def storage_status(settings: Settings) -> dict[str, int | None]:
    """Package count per persisted generation, ``None`` where absent."""
    with SnapshotStorage(settings.data_dir) as storage:
        texts = storage.generations()
    return {
        generation: (count_packages(text) if text is not None else None)
        for generation, text in texts.items()
    }
