"""Region service: the two operator-facing workflows.

fetch_region_inventory: query both upstreams for every zone of a region
and store the raw records as a new snapshot.

generate_region_descriptor: reconcile the newest snapshot and, if no
duplicate serials were found, write the descriptor. The report and the
warnings are produced either way so the operator can see what went wrong.
"""

import logging
from collections.abc import Callable
from pathlib import Path

import httpx

from azinventory.config import settings
from azinventory.descriptor import write_descriptor
from azinventory.reconcile.engine import reconcile
from azinventory.reconcile.models import ReconcileResult
from azinventory.report import format_report
from azinventory.schemas.config import InventoryConfig
from azinventory.sources.asset import AssetSourceClient
from azinventory.sources.fleet import FleetSourceClient
from azinventory.sync.collector import collect_inventory
from azinventory.sync.snapshot import latest_snapshot, load_snapshot, save_snapshot

logger = logging.getLogger(__name__)


async def fetch_region_inventory(
    config: InventoryConfig,
    region_name: str,
    data_dir: str | Path,
    password: str,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> Path:
    region = config.region(region_name)
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    try:
        asset_client = AssetSourceClient(
            client,
            config.asset_system.url,
            config.asset_system.username,
            password,
        )
        inventory = await collect_inventory(
            region,
            asset_client,
            lambda endpoint: FleetSourceClient(client, endpoint),
        )
    finally:
        if owns_client:
            await client.aclose()

    return save_snapshot(data_dir, region_name, inventory)


def generate_region_descriptor(
    config: InventoryConfig,
    region_name: str,
    data_dir: str | Path,
    output: str | Path,
    *,
    emit: Callable[[str], object] = print,
) -> ReconcileResult:
    region = config.region(region_name)
    snapshot_dir = latest_snapshot(data_dir, region_name)
    inventory = load_snapshot(snapshot_dir, region)

    result = reconcile(
        region,
        inventory.devices_by_zone,
        inventory.nodes_by_zone,
        hardware_roles=config.hardware_roles,
        hostname_prefixes=config.hostname_prefixes,
    )
    emit(format_report(region, result))
    for warning in result.warnings:
        logger.warning("%s", warning)

    result.raise_for_errors()
    write_descriptor(output, result.descriptor)
    return result
