"""Tests for on-disk inventory snapshots."""

import json
from datetime import UTC, datetime

import pytest

from azinventory.errors import SnapshotError
from azinventory.schemas.config import RegionConfig, ZoneConfig
from azinventory.sources.asset import parse_devices
from azinventory.sources.fleet import parse_nodes
from azinventory.sync.collector import Inventory, ZoneInventory
from azinventory.sync.snapshot import (
    latest_snapshot,
    load_snapshot,
    region_root,
    save_snapshot,
    snapshot_tag,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _region() -> RegionConfig:
    return RegionConfig(
        nshards=2,
        zones=[
            ZoneConfig(name="az1", building="DC1", racks=["R01"]),
            ZoneConfig(name="az2", building="DC2", racks=["R01"]),
        ],
    )


def _raw_device(device_id: int, building: str) -> dict:
    return {
        "device_id": device_id,
        "serial_no": f"S{device_id}",
        "name": f"SSS{device_id}",
        "hw_model": "Joyent-Storage-Platform-7001",
        "building": building,
        "rack": "R01",
        "start_at": 0,
    }


def _raw_node(serial: str) -> dict:
    return {
        "uuid": f"uuid-{serial}",
        "hostname": f"SS{serial}",
        "headnode": False,
        "reserved": True,
        "ram": 65536,
        "sysinfo": {"Serial Number": serial, "Product": "x"},
    }


def _inventory(with_nodes: bool = True) -> Inventory:
    zones = {}
    for i, (name, building) in enumerate([("az1", "DC1"), ("az2", "DC2")], start=1):
        raw_devices = [_raw_device(i, building)]
        raw_nodes = [_raw_node(f"S{i}")] if with_nodes and name == "az1" else None
        zones[name] = ZoneInventory(
            zone=name,
            building=building,
            raw_devices=raw_devices,
            devices=parse_devices(raw_devices),
            raw_nodes=raw_nodes,
            nodes=parse_nodes(raw_nodes) if raw_nodes is not None else None,
        )
    return Inventory(zones=zones)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestSnapshotTag:
    def test_tag_is_timestamp_and_pid(self):
        tag = snapshot_tag(datetime(2017, 3, 1, 12, 30, 5, tzinfo=UTC), 4242)
        assert tag == "2017-03-01T12:30:05.4242"


class TestSaveAndLoad:
    def test_saved_snapshot_loads_back(self, tmp_path):
        snapshot_dir = save_snapshot(tmp_path, "us-east", _inventory(), tag="t1")

        assert sorted(p.name for p in snapshot_dir.iterdir()) == [
            "devices-DC1.json",
            "devices-DC2.json",
            "nodes-DC1.json",
        ]

        inventory = load_snapshot(snapshot_dir, _region())
        assert [d.serial for d in inventory.devices_by_zone["az1"]] == ["S1"]
        assert [d.serial for d in inventory.devices_by_zone["az2"]] == ["S2"]
        assert [n.serial for n in inventory.nodes_by_zone["az1"]] == ["S1"]
        assert inventory.nodes_by_zone["az2"] is None

    def test_existing_snapshot_directory_is_not_reused(self, tmp_path):
        save_snapshot(tmp_path, "us-east", _inventory(), tag="t1")
        with pytest.raises(SnapshotError, match="mkdir"):
            save_snapshot(tmp_path, "us-east", _inventory(), tag="t1")

    def test_missing_device_file_fails(self, tmp_path):
        snapshot_dir = save_snapshot(tmp_path, "us-east", _inventory(), tag="t1")
        (snapshot_dir / "devices-DC2.json").unlink()

        with pytest.raises(SnapshotError, match="devices-DC2.json"):
            load_snapshot(snapshot_dir, _region())

    def test_invalid_record_fails(self, tmp_path):
        snapshot_dir = save_snapshot(tmp_path, "us-east", _inventory(), tag="t1")
        (snapshot_dir / "devices-DC1.json").write_text(json.dumps([{"device_id": 1}]))

        with pytest.raises(SnapshotError, match="validate"):
            load_snapshot(snapshot_dir, _region())

    def test_non_list_file_fails(self, tmp_path):
        snapshot_dir = save_snapshot(tmp_path, "us-east", _inventory(), tag="t1")
        (snapshot_dir / "nodes-DC1.json").write_text("{}")

        with pytest.raises(SnapshotError, match="list of records"):
            load_snapshot(snapshot_dir, _region())


class TestLatestSnapshot:
    def test_newest_tag_wins(self, tmp_path):
        save_snapshot(tmp_path, "us-east", _inventory(), tag="2017-03-01T00:00:00.10")
        save_snapshot(tmp_path, "us-east", _inventory(), tag="2017-03-02T00:00:00.9")

        assert latest_snapshot(tmp_path, "us-east").name == "2017-03-02T00:00:00.9"

    def test_no_snapshots(self, tmp_path):
        region_root(tmp_path, "us-east").mkdir(parents=True)
        with pytest.raises(SnapshotError, match="no inventory snapshots"):
            latest_snapshot(tmp_path, "us-east")

    def test_missing_region_directory(self, tmp_path):
        with pytest.raises(SnapshotError, match="list"):
            latest_snapshot(tmp_path, "us-east")
