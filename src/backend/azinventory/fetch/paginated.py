"""Lazy, pull-based iteration over offset/limit paginated APIs.

PaginatedFetcher turns a page function ``fetch_page(offset, limit)`` into an
async iterator of records. Pages are requested only when the consumer has
drained the previous one, so a consumer that stops early never triggers the
remaining requests.

Termination is decided by the page function, which reports ``done`` using
whichever policy its backend supports:

  done_by_total_count  the response carries a total record count
  done_by_short_page   no total; a page shorter than the limit is the last

A fetcher is single-use. Once it has finished or failed, iterating it again
yields nothing; build a new one to start over.
"""

import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from azinventory.errors import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    records: list[T]
    done: bool


PageFetch = Callable[[int, int], Awaitable[Page[T]]]


def done_by_total_count(offset: int, limit: int, total: int) -> bool:
    return offset + limit >= total


def done_by_short_page(count: int, limit: int) -> bool:
    return count < limit


class PaginatedFetcher(Generic[T]):
    def __init__(
        self,
        fetch_page: PageFetch,
        limit: int,
        *,
        description: str = "records",
    ) -> None:
        if limit <= 0:
            raise ValueError(f"limit must be greater than 0 (got {limit})")
        self._fetch_page = fetch_page
        self._buffer: deque[T] = deque()
        self._finished = False
        self.limit = limit
        self.description = description
        self.offset = 0
        self.pages_fetched = 0

    @property
    def finished(self) -> bool:
        """True once no further page will be requested."""
        return self._finished

    def __aiter__(self) -> "PaginatedFetcher[T]":
        return self

    async def __anext__(self) -> T:
        while not self._buffer:
            if self._finished:
                raise StopAsyncIteration
            await self._advance()
        return self._buffer.popleft()

    async def _advance(self) -> None:
        offset = self.offset
        try:
            page = await self._fetch_page(offset, self.limit)
        except Exception as exc:
            self._finished = True
            raise FetchError(
                f"fetching {self.description} (offset {offset}): {exc}"
            ) from exc

        self.pages_fetched += 1
        self.offset += len(page.records)
        self._buffer.extend(page.records)
        logger.debug(
            "fetched %d %s at offset %d (done=%s)",
            len(page.records),
            self.description,
            offset,
            page.done,
        )

        # An empty page ends the stream even when not marked done
        if page.done or not page.records:
            self._finished = True

    async def collect(self) -> list[T]:
        return [record async for record in self]
