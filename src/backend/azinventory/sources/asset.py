"""Asset-management (Device42) source.

AssetSourceClient binds PaginatedFetcher to the Device42 device listing:
  1. Validate the endpoint and credentials before any request is made
  2. Page through /api/1.0/devices/all/ filtered by building
  3. Stop once offset + limit reaches the reported total_count
  4. Validate every raw device into a Device record

An empty result for a building is an error: it almost always means the
building name in the configuration is wrong.
"""

import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlsplit

import httpx
from pydantic import ValidationError

from azinventory.config import settings
from azinventory.errors import ConfigurationError, NoDevicesError, RecordValidationError
from azinventory.fetch.http import read_json
from azinventory.fetch.paginated import Page, PaginatedFetcher, done_by_total_count
from azinventory.schemas.inventory import AssetDevicePage, Device

logger = logging.getLogger(__name__)

DEVICES_RESOURCE = "/api/1.0/devices/all/"


def check_endpoint(url: str, username: str) -> None:
    """Reject URLs and usernames that the request could not carry safely."""
    parts = urlsplit(url)
    if parts.scheme != "https":
        raise ConfigurationError('asset system URL: only "https" URLs are supported')
    if parts.path not in ("", "/") or parts.query or parts.fragment:
        raise ConfigurationError("asset system URL: trailing characters")
    if parts.username is not None or parts.password is not None:
        raise ConfigurationError(
            "asset system URL: username and password may not be specified "
            "directly in the URL"
        )
    # Basic auth joins the two with a colon
    if ":" in username:
        raise ConfigurationError("asset system username may not contain a colon")


def parse_device(raw: Any) -> Device:
    try:
        return Device.model_validate(raw)
    except ValidationError as exc:
        ident = raw.get("device_id") if isinstance(raw, dict) else None
        raise RecordValidationError(f"invalid device record (device_id {ident}): {exc}") from exc


def parse_devices(raws: Iterable[Any]) -> list[Device]:
    return [parse_device(raw) for raw in raws]


class AssetSourceClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        username: str,
        password: str,
        *,
        limit: int | None = None,
    ) -> None:
        check_endpoint(url, username)
        self._client = http_client
        self._base_url = url.rstrip("/")
        self._auth = httpx.BasicAuth(username, password)
        self.limit = limit if limit is not None else settings.ASSET_PAGE_LIMIT

    def stream(self, queryparams: dict[str, Any], description: str) -> PaginatedFetcher[dict]:
        """Return a fresh fetcher over raw device objects matching queryparams."""
        url = self._base_url + DEVICES_RESOURCE

        async def fetch_page(offset: int, limit: int) -> Page[dict]:
            params = {**queryparams, "offset": offset, "limit": limit}
            response = await self._client.get(
                url,
                params=params,
                auth=self._auth,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
            page = AssetDevicePage.model_validate(read_json(response))
            if page.total_count == 0:
                return Page(records=[], done=True)
            return Page(
                records=page.devices,
                done=done_by_total_count(page.offset, page.limit, page.total_count),
            )

        return PaginatedFetcher(fetch_page, self.limit, description=description)

    async def fetch_device_records(self, building: str) -> tuple[list[dict], list[Device]]:
        """Return the raw device objects of a building together with their parsed form.

        Every raw record is validated before anything is returned, so a raw
        list from here is always safe to snapshot.
        """
        logger.info("fetching asset system devices for building %s", building)
        fetcher = self.stream({"building": building}, f"devices in building {building}")
        raws = await fetcher.collect()
        if not raws:
            raise NoDevicesError(f'no devices found in building "{building}"')
        logger.info(
            "fetched %d devices for building %s in %d pages",
            len(raws),
            building,
            fetcher.pages_fetched,
        )
        return raws, parse_devices(raws)

    async def fetch_raw_devices(self, building: str) -> list[dict]:
        raws, _ = await self.fetch_device_records(building)
        return raws

    async def fetch_devices(self, building: str) -> list[Device]:
        _, devices = await self.fetch_device_records(building)
        return devices
