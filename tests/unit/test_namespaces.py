from __future__ import annotations

from collections.abc import Callable

import pytest

from pausewatch.index import parse_index
from pausewatch.models import NamespaceMismatch
from pausewatch.namespaces import check_namespace, expected_prefix, validate_namespaces


def test_expected_prefix_replaces_every_hyphen() -> None:
    assert expected_prefix("Foo-Bar-Baz") == "Foo::Bar::Baz"
    assert expected_prefix("Moose") == "Moose"


@pytest.mark.parametrize(
    ("name", "passes"),
    [
        ("Foo::Bar", True),
        ("Foo::Bar::Util", True),
        # literal prefix match, not a namespace segment match
        ("Foo::Barley", True),
        ("Baz::Util", False),
        ("Foo", False),
    ],
)
def test_check_namespace(name: str, passes: bool) -> None:
    mismatch = check_namespace(name, "Foo-Bar")
    assert (mismatch is None) is passes


def test_mismatch_carries_expected_prefix() -> None:
    assert check_namespace("X::Wrong", "Y-Dist") == NamespaceMismatch(
        name="X::Wrong", dist="Y-Dist", expected_prefix="Y::Dist"
    )


def test_validate_namespaces_sorted(make_index: Callable[..., str]) -> None:
    snapshot = parse_index(
        make_index([("Z::Odd", "Y-Dist"), ("X::Wrong", "Y-Dist"), ("Y::Dist", "Y-Dist")])
    )
    mismatches = validate_namespaces(["Z::Odd", "X::Wrong", "Y::Dist", "Not::Indexed"], snapshot)
    assert [m.name for m in mismatches] == ["X::Wrong", "Z::Odd"]
