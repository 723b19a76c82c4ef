from __future__ import annotations

import asyncio
import gzip
import logging
import zlib
from pathlib import Path
from types import TracebackType

import httpx

from pausewatch import config
from pausewatch.exceptions import FetchError
from pausewatch.utils import AsyncRetry, decode_payload

logger = logging.getLogger(__name__)

_DECODE_ERRORS = (EOFError, gzip.BadGzipFile, zlib.error)


def _decode(source: str, content: bytes) -> str:
    try:
        return decode_payload(content)
    except _DECODE_ERRORS as exc:
        raise FetchError(source, reason=f"corrupt gzip payload: {exc}") from exc


class IndexFetcher:
    """Downloads the index and permissions files, gunzipping as needed."""

    def __init__(
        self,
        *,
        timeout: float = config.HTTP_TIMEOUT,
        retries: int = config.HTTP_RETRIES,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": config.USER_AGENT},
            follow_redirects=True,
        )
        self._retry = AsyncRetry(retries=retries, delay=1.0, exceptions=(httpx.TransportError,))

    async def __aenter__(self) -> IndexFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_text(self, url: str) -> str:
        async def _execute() -> httpx.Response:
            return await self._client.get(url)

        try:
            response = await self._retry(_execute)
        except httpx.HTTPError as exc:
            raise FetchError(url, reason=str(exc) or type(exc).__name__) from exc
        if not response.is_success:
            raise FetchError(url, status=response.status_code, reason=response.reason_phrase)
        logger.info("Fetched %s (%d bytes)", url, len(response.content))
        return _decode(url, response.content)

    async def obtain(self, source: str | Path) -> str:
        """Read ``source`` from disk when it is a ``Path``, otherwise download it."""
        if isinstance(source, Path):
            return read_local(source)
        return await self.fetch_text(source)

    async def fetch_many(self, *sources: str | Path) -> list[str]:
        """Obtain every source concurrently; the first failure cancels the rest."""
        tasks = [asyncio.ensure_future(self.obtain(source)) for source in sources]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


def read_local(path: Path) -> str:
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise FetchError(str(path), reason=exc.strerror or str(exc)) from exc
    return _decode(str(path), content)
