from __future__ import annotations

from collections.abc import Callable, Iterable

import pytest

INDEX_HEADER = """File:         02packages.details.txt
URL:          http://www.perl.com/CPAN/modules/02packages.details.txt
Description:  Package names found in directory $CPAN/authors/id/
Columns:      package name, version, path
Intended-For: Automated fetch routines, namespace documentation.
Written-By:   PAUSE version 1.005
Line-Count:   {count}
Last-Updated: Sat, 17 Oct 2026 10:29:02 GMT

"""


def index_text(entries: Iterable[tuple[str, str]], *, header: bool = True) -> str:
    """Render ``(package, distribution)`` pairs as an index file body."""
    lines = [
        f"{package:<30} 1.00  A/AU/AUTHOR/{dist}-1.00.tar.gz"
        for package, dist in entries
    ]
    body = "\n".join(lines) + "\n"
    if not header:
        return body
    return INDEX_HEADER.format(count=len(lines)) + body


@pytest.fixture
def make_index() -> Callable[..., str]:
    return index_text
