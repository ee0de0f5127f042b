"""On-disk inventory snapshots.

Fetching and generating are separate steps. fetch-inventory stores the raw
upstream records under

    <data_dir>/inventory/<region>/<UTC timestamp>.<pid>/
        devices-<building>.json     always, one per zone
        nodes-<building>.json       only when fleet data was fetched

and generate reads back the newest snapshot. Snapshot names sort in time
order, so the newest is the last one lexically.

Only the newest snapshot is ever considered. If it is incomplete or
invalid, loading fails rather than falling back to an older snapshot.
"""

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from azinventory.errors import InventoryError, SnapshotError
from azinventory.schemas.config import RegionConfig
from azinventory.sources.asset import parse_devices
from azinventory.sources.fleet import parse_nodes
from azinventory.sync.collector import Inventory, ZoneInventory

logger = logging.getLogger(__name__)

_TAG_FORMAT = "%Y-%m-%dT%H:%M:%S"


def region_root(data_dir: str | Path, region_name: str) -> Path:
    return Path(data_dir) / "inventory" / region_name


def devices_file(snapshot_dir: Path, building: str) -> Path:
    return snapshot_dir / f"devices-{building}.json"


def nodes_file(snapshot_dir: Path, building: str) -> Path:
    return snapshot_dir / f"nodes-{building}.json"


def snapshot_tag(now: datetime | None = None, pid: int | None = None) -> str:
    now = now or datetime.now(UTC)
    pid = pid if pid is not None else os.getpid()
    return f"{now.strftime(_TAG_FORMAT)}.{pid}"


def _write_json(path: Path, records: list[dict]) -> None:
    try:
        path.write_text(json.dumps(records), encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f'write "{path}": {exc}') from exc


def save_snapshot(
    data_dir: str | Path,
    region_name: str,
    inventory: Inventory,
    *,
    tag: str | None = None,
) -> Path:
    snapshot_dir = region_root(data_dir, region_name) / (tag or snapshot_tag())
    try:
        snapshot_dir.mkdir(parents=True, exist_ok=False)
    except OSError as exc:
        raise SnapshotError(f'mkdir "{snapshot_dir}": {exc}') from exc

    for zone in inventory.zones.values():
        _write_json(devices_file(snapshot_dir, zone.building), zone.raw_devices)
        if zone.raw_nodes is not None:
            _write_json(nodes_file(snapshot_dir, zone.building), zone.raw_nodes)

    logger.info("saved inventory snapshot %s", snapshot_dir)
    return snapshot_dir


def latest_snapshot(data_dir: str | Path, region_name: str) -> Path:
    root = region_root(data_dir, region_name)
    try:
        entries = sorted((p for p in root.iterdir() if p.is_dir()), reverse=True)
    except OSError as exc:
        raise SnapshotError(f'list "{root}": {exc}') from exc
    if not entries:
        raise SnapshotError(f'no inventory snapshots found in "{root}"')
    return entries[0]


def _read_json(path: Path) -> Any:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f'read "{path}": {exc}') from exc
    try:
        parsed = json.loads(contents)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f'parse "{path}": {exc}') from exc
    if not isinstance(parsed, list):
        raise SnapshotError(f'validate "{path}": expected a list of records')
    return parsed


def load_snapshot(snapshot_dir: Path, region: RegionConfig) -> Inventory:
    zones: dict[str, ZoneInventory] = {}
    for zone in region.zones:
        path = devices_file(snapshot_dir, zone.building)
        raw_devices = _read_json(path)
        try:
            devices = parse_devices(raw_devices)
        except InventoryError as exc:
            raise SnapshotError(f'validate "{path}": {exc.message}') from exc

        raw_nodes = nodes = None
        path = nodes_file(snapshot_dir, zone.building)
        if path.exists():
            raw_nodes = _read_json(path)
            try:
                nodes = parse_nodes(raw_nodes)
            except InventoryError as exc:
                raise SnapshotError(f'validate "{path}": {exc.message}') from exc

        zones[zone.name] = ZoneInventory(
            zone=zone.name,
            building=zone.building,
            raw_devices=raw_devices,
            devices=devices,
            raw_nodes=raw_nodes,
            nodes=nodes,
        )

    logger.info("loaded inventory snapshot %s", snapshot_dir)
    return Inventory(zones=zones)
