from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from pausewatch.api import (
    analyze,
    audit_permissions,
    run_all,
    run_all_async,
    storage_status,
    watch_index,
    watch_index_async,
)
from pausewatch.config import Settings
from pausewatch.exceptions import FetchError
from pausewatch.fetch import IndexFetcher
from pausewatch.index import parse_index
from pausewatch.models import RunStatus
from pausewatch.snapshots import PERMISSIONS_KEY, SnapshotStorage

PREVIOUS = [("A::One", "DistA"), ("B::Two", "DistB")]
CURRENT = [*PREVIOUS, ("A::Onee", "DistA"), ("C::Three", "C-Three")]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        index_url="https://cpan.example.org/modules/02packages.details.txt.gz",
        permissions_url="https://cpan.example.org/modules/06perms.txt.gz",
    )


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_analyze_end_to_end_scenario(make_index: Callable[..., str]) -> None:
    previous = parse_index(make_index(PREVIOUS))
    current = parse_index(make_index(CURRENT))
    result = analyze(current, previous)
    assert result.status is RunStatus.COMPLETED
    assert result.newness.packages == {"A::Onee", "C::Three"}
    assert result.newness.distributions == {"C-Three"}
    # A::Onee is one edit from A::One but both belong to DistA
    assert result.confusables == []
    # DistA expects the A::Onee name to start with "DistA"
    assert [m.name for m in result.namespace_mismatches] == ["A::Onee"]
    assert result.exit_code() == 1


def test_analyze_flags_out_of_namespace_package(make_index: Callable[..., str]) -> None:
    previous = parse_index(make_index([("Y::Dist", "Y-Dist")]))
    current = parse_index(make_index([("Y::Dist", "Y-Dist"), ("X::Wrong", "Y-Dist")]))
    result = analyze(current, previous)
    assert [(m.name, m.expected_prefix) for m in result.namespace_mismatches] == [
        ("X::Wrong", "Y::Dist")
    ]


def test_analyze_reports_cross_distribution_confusable(make_index: Callable[..., str]) -> None:
    previous = parse_index(make_index([("Try::Tiny", "Try-Tiny")]))
    current = parse_index(make_index([("Try::Tiny", "Try-Tiny"), ("Try::Tiyn", "Try-Tiyn")]))
    result = analyze(current, previous)
    assert [(c.new_name, c.other_name, c.other_dist) for c in result.confusables] == [
        ("Try::Tiyn", "Try::Tiny", "Try-Tiny")
    ]


def test_analyze_short_circuits_without_new_packages(make_index: Callable[..., str]) -> None:
    snapshot = parse_index(make_index(PREVIOUS))
    result = analyze(snapshot, snapshot)
    assert result.status is RunStatus.NO_NEW_PACKAGES
    assert result.warnings == []
    assert result.exit_code() == 0


def test_first_run_stores_baseline(
    settings: Settings, tmp_path: Path, make_index: Callable[..., str]
) -> None:
    index = _write(tmp_path, "index.txt", make_index(PREVIOUS))
    result = watch_index(settings, index_file=index)
    assert result.status is RunStatus.FIRST_RUN
    assert result.exit_code() == 3
    assert storage_status(settings) == {
        "current": 2,
        "previous": None,
        "previous-previous": None,
    }


def test_second_run_diffs_against_baseline(
    settings: Settings, tmp_path: Path, make_index: Callable[..., str]
) -> None:
    watch_index(settings, index_file=_write(tmp_path, "i1.txt", make_index(PREVIOUS)))
    result = watch_index(settings, index_file=_write(tmp_path, "i2.txt", make_index(CURRENT)))
    assert result.status is RunStatus.COMPLETED
    assert result.newness.packages == {"A::Onee", "C::Three"}
    assert storage_status(settings) == {
        "current": 4,
        "previous": 2,
        "previous-previous": None,
    }


async def test_fetch_failure_keeps_generations(
    settings: Settings, tmp_path: Path, make_index: Callable[..., str], httpx_mock
) -> None:
    baseline = make_index(PREVIOUS)
    await watch_index_async(settings, index_file=_write(tmp_path, "i1.txt", baseline))
    httpx_mock.add_response(url=settings.index_url, status_code=500)
    with pytest.raises(FetchError):
        await watch_index_async(settings)
    with SnapshotStorage(settings.data_dir) as storage:
        assert storage.generations() == {
            "current": baseline,
            "previous": None,
            "previous-previous": None,
        }


def test_audit_permissions_persists_artifact(settings: Settings, tmp_path: Path) -> None:
    perms = _write(tmp_path, "perms.txt", "Foo,NEEDHELP,f\nBar,ALICE,m\n")
    audit = audit_permissions(settings, perms_file=perms)
    assert audit.total == 2
    assert [v.package for v in audit.violations] == ["Foo"]
    with SnapshotStorage(settings.data_dir) as storage:
        assert storage.read(PERMISSIONS_KEY) == "Foo,NEEDHELP,f\nBar,ALICE,m\n"


def test_run_all_uses_both_inputs(
    settings: Settings, tmp_path: Path, make_index: Callable[..., str]
) -> None:
    perms = _write(tmp_path, "perms.txt", "Foo,HANDOFF,c\n")
    index = _write(tmp_path, "index.txt", make_index(PREVIOUS))
    watch, audit = run_all(settings, index_file=index, perms_file=perms)
    assert watch.status is RunStatus.FIRST_RUN
    assert audit.total == 1
    assert audit.violations == []


class SlowIndexFetcher(IndexFetcher):
    def __init__(self) -> None:
        super().__init__()
        self.closed = False
        self.finished_after_close = False

    async def close(self) -> None:
        self.closed = True
        await super().close()

    async def fetch_text(self, url: str) -> str:
        await asyncio.sleep(0.05)
        self.finished_after_close = self.closed
        return ""


async def test_run_all_cancels_index_fetch_when_perms_missing(
    settings: Settings, tmp_path: Path, make_index: Callable[..., str]
) -> None:
    baseline = make_index(PREVIOUS)
    await watch_index_async(settings, index_file=_write(tmp_path, "i1.txt", baseline))
    fetcher = SlowIndexFetcher()
    with pytest.raises(FetchError, match="missing.txt"):
        await run_all_async(settings, perms_file=tmp_path / "missing.txt", fetcher=fetcher)
    await asyncio.sleep(0.1)
    assert fetcher.closed
    assert not fetcher.finished_after_close
    with SnapshotStorage(settings.data_dir) as storage:
        assert storage.generations()["current"] == baseline
