"""Concurrent per-zone inventory collection.

collect_inventory() starts one task per zone. Each task fetches its zone's
devices from the asset system and, when the zone has a fleet endpoint, its
servers from the fleet system, then returns a ZoneInventory. The fan-in
keys results by zone name, so no two tasks ever write the same slot.

Asset data is mandatory: the first asset failure cancels every sibling
task and propagates. Fleet data is optional: a failure is logged and the
zone's fleet slot is left as None.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from azinventory.errors import InventoryError
from azinventory.schemas.config import RegionConfig, ZoneConfig
from azinventory.schemas.inventory import Device, Node
from azinventory.sources.asset import AssetSourceClient
from azinventory.sources.fleet import FleetSourceClient, parse_nodes

logger = logging.getLogger(__name__)

FleetClientFactory = Callable[[str], FleetSourceClient]


@dataclass(frozen=True)
class ZoneInventory:
    zone: str
    building: str
    raw_devices: list[dict]
    devices: list[Device]
    raw_nodes: list[dict] | None = None
    nodes: list[Node] | None = None


@dataclass(frozen=True)
class Inventory:
    zones: dict[str, ZoneInventory]

    @property
    def devices_by_zone(self) -> dict[str, list[Device]]:
        return {name: z.devices for name, z in self.zones.items()}

    @property
    def nodes_by_zone(self) -> dict[str, list[Node] | None]:
        return {name: z.nodes for name, z in self.zones.items()}


async def _collect_fleet(
    zone: ZoneConfig, fleet_factory: FleetClientFactory | None
) -> tuple[list[dict] | None, list[Node] | None]:
    if zone.fleet_endpoint is None or fleet_factory is None:
        logger.warning("zone %s: no fleet endpoint configured", zone.name)
        return None, None
    try:
        client = fleet_factory(zone.fleet_endpoint)
        raw_nodes = await client.fetch_raw_nodes()
        return raw_nodes, parse_nodes(raw_nodes)
    except InventoryError as exc:
        logger.warning("zone %s: fleet data unavailable: %s", zone.name, exc)
        return None, None


async def _collect_zone(
    zone: ZoneConfig,
    asset_client: AssetSourceClient,
    fleet_factory: FleetClientFactory | None,
) -> ZoneInventory:
    raw_devices, devices = await asset_client.fetch_device_records(zone.building)
    raw_nodes, nodes = await _collect_fleet(zone, fleet_factory)
    return ZoneInventory(
        zone=zone.name,
        building=zone.building,
        raw_devices=raw_devices,
        devices=devices,
        raw_nodes=raw_nodes,
        nodes=nodes,
    )


async def collect_inventory(
    region: RegionConfig,
    asset_client: AssetSourceClient,
    fleet_factory: FleetClientFactory | None = None,
) -> Inventory:
    tasks = [
        asyncio.create_task(_collect_zone(zone, asset_client, fleet_factory), name=zone.name)
        for zone in region.zones
    ]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    return Inventory(zones={z.zone: z for z in results})
