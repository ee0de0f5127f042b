"""Fleet-management (CNAPI) source.

CNAPI answers /servers with a bare JSON array and no total count, so the
listing ends at the first page shorter than the requested limit. The
endpoint is an operator-supplied IP address reached over plain HTTP.
"""

import ipaddress
import logging
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import ValidationError

from azinventory.config import settings
from azinventory.errors import ConfigurationError, FetchError, RecordValidationError
from azinventory.fetch.http import read_json
from azinventory.fetch.paginated import Page, PaginatedFetcher, done_by_short_page
from azinventory.schemas.inventory import Node

logger = logging.getLogger(__name__)


def parse_node(raw: Any) -> Node:
    try:
        return Node.model_validate(raw)
    except ValidationError as exc:
        ident = raw.get("uuid") if isinstance(raw, dict) else None
        raise RecordValidationError(f"invalid fleet server record (uuid {ident}): {exc}") from exc


def parse_nodes(raws: Iterable[Any]) -> list[Node]:
    return [parse_node(raw) for raw in raws]


class FleetSourceClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str,
        *,
        limit: int | None = None,
    ) -> None:
        try:
            address = ipaddress.ip_address(endpoint)
        except ValueError as exc:
            raise ConfigurationError(
                f'fleet endpoint must be an IP address: "{endpoint}"'
            ) from exc
        host = f"[{address}]" if address.version == 6 else str(address)
        self._client = http_client
        self._url = f"http://{host}/servers"
        self.endpoint = endpoint
        self.limit = limit if limit is not None else settings.FLEET_PAGE_LIMIT

    def stream(self) -> PaginatedFetcher[dict]:
        async def fetch_page(offset: int, limit: int) -> Page[dict]:
            params = {"extras": "sysinfo", "offset": offset, "limit": limit}
            response = await self._client.get(
                self._url, params=params, timeout=settings.HTTP_TIMEOUT_SECONDS
            )
            parsed = read_json(response)
            if not isinstance(parsed, list):
                raise FetchError("fleet response was not an array")
            return Page(records=parsed, done=done_by_short_page(len(parsed), limit))

        return PaginatedFetcher(
            fetch_page, self.limit, description=f"fleet servers from {self.endpoint}"
        )

    async def fetch_raw_nodes(self) -> list[dict]:
        logger.info("fetching fleet servers from %s", self.endpoint)
        raws = await self.stream().collect()
        logger.info("fetched %d fleet servers from %s", len(raws), self.endpoint)
        return raws

    async def fetch_nodes(self) -> list[Node]:
        return parse_nodes(await self.fetch_raw_nodes())
