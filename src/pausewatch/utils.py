from __future__ import annotations

import asyncio
import gzip
import re
from collections.abc import Awaitable, Callable, Iterable, Iterator
from typing import TypeVar

T = TypeVar("T")

GZIP_MAGIC = b"\x1f\x8b"
_HEADER_LINE = re.compile(r"^[A-Za-z][\w-]*:\s")


class AsyncRetry:
    def __init__(
        self,
        retries: int,
        delay: float,
        *,
        exceptions: tuple[type[Exception], ...] = (Exception,),
    ) -> None:
        self.retries = retries
        self.delay = delay
        self._exceptions = exceptions

    async def __call__(self, task: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                return await task()
            except asyncio.CancelledError:
                raise
            except self._exceptions:
                attempt += 1
                if attempt > self.retries:
                    raise
                await asyncio.sleep(self.delay * attempt)


def decode_payload(content: bytes) -> str:
    """Gunzip ``content`` when it carries the gzip magic bytes, then decode it."""
    if content[:2] == GZIP_MAGIC:
        content = gzip.decompress(content)
    return content.decode("utf-8", errors="replace")


def skip_header(lines: Iterable[str]) -> Iterator[str]:
    """Yield body lines, dropping a leading ``Key: value`` block up to the first blank line.

    Input without a recognizable header line is passed through untouched.
    """
    iterator = iter(lines)
    for first in iterator:
        if _HEADER_LINE.match(first):
            for line in iterator:
                if not line.strip():
                    break
        else:
            yield first
        break
    yield from iterator
