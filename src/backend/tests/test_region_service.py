"""Tests for the region workflows and the CLI that drives them.

The fetch workflow runs against an httpx.MockTransport that answers for
both upstream systems. The generate workflow reads snapshots written with
save_snapshot into tmp_path.
"""

import io
import json

import httpx
import pytest

from azinventory.cli import main
from azinventory.errors import (
    DuplicateSerialError,
    NoDevicesError,
    OutputExistsError,
    SnapshotError,
)
from azinventory.schemas.config import InventoryConfig
from azinventory.services.region_service import (
    fetch_region_inventory,
    generate_region_descriptor,
)
from azinventory.sources.asset import parse_devices
from azinventory.sync.collector import Inventory, ZoneInventory
from azinventory.sync.snapshot import latest_snapshot, save_snapshot

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config_dict() -> dict:
    return {
        "asset_system": {"url": "https://d42.example.com", "username": "readonly"},
        "regions": {
            "us-east": {
                "nshards": 2,
                "zones": [
                    {
                        "name": "us-east-1",
                        "building": "DC1",
                        "racks": ["R01"],
                        "fleet_endpoint": "10.0.0.1",
                    }
                ],
            }
        },
    }


def _config() -> InventoryConfig:
    return InventoryConfig.model_validate(_config_dict())


def _raw_device(device_id: int, serial: str) -> dict:
    return {
        "device_id": device_id,
        "serial_no": serial,
        "name": f"SS{serial}",
        "hw_model": "Joyent-Storage-Platform-7001",
        "building": "DC1",
        "rack": "R01",
        "uuid": f"uuid-{serial}",
        "ram": 256,
        "start_at": 0,
    }


def _raw_node(serial: str) -> dict:
    return {
        "uuid": f"uuid-{serial}",
        "hostname": f"SS{serial}",
        "headnode": False,
        "reserved": True,
        "ram": 262144,
        "sysinfo": {"Serial Number": serial, "Product": "x"},
    }


def _save(data_dir, raw_devices: list[dict], raw_nodes: list[dict] | None = None):
    zone = ZoneInventory(
        zone="us-east-1",
        building="DC1",
        raw_devices=raw_devices,
        devices=parse_devices(raw_devices),
        raw_nodes=raw_nodes,
        nodes=None,
    )
    return save_snapshot(data_dir, "us-east", Inventory(zones={"us-east-1": zone}), tag="t1")


def _upstream_handler(devices: list[dict], nodes: list[dict]):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.host == "d42.example.com":
            assert request.url.path == "/api/1.0/devices/all/"
            assert request.url.params["building"] == "DC1"
            assert request.headers["authorization"].startswith("Basic ")
            return httpx.Response(
                200,
                json={
                    "total_count": len(devices),
                    "limit": 100,
                    "offset": 0,
                    "Devices": devices,
                },
            )
        assert request.url.host == "10.0.0.1"
        assert request.url.path == "/servers"
        assert request.url.params["extras"] == "sysinfo"
        return httpx.Response(200, json=nodes)

    return handler, requests


# ---------------------------------------------------------------------------
# fetch_region_inventory
# ---------------------------------------------------------------------------


class TestFetchRegionInventory:
    async def test_snapshot_holds_both_sources(self, tmp_path):
        handler, requests = _upstream_handler([_raw_device(1, "S1")], [_raw_node("S1")])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            snapshot_dir = await fetch_region_inventory(
                _config(), "us-east", tmp_path, "secret", http_client=client
            )

        assert snapshot_dir == latest_snapshot(tmp_path, "us-east")
        devices = json.loads((snapshot_dir / "devices-DC1.json").read_text())
        nodes = json.loads((snapshot_dir / "nodes-DC1.json").read_text())
        assert [d["serial_no"] for d in devices] == ["S1"]
        assert [n["uuid"] for n in nodes] == ["uuid-S1"]
        assert {r.url.host for r in requests} == {"d42.example.com", "10.0.0.1"}

    async def test_failed_fetch_writes_no_snapshot(self, tmp_path):
        handler, _ = _upstream_handler([], [])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NoDevicesError, match="no devices found"):
                await fetch_region_inventory(
                    _config(), "us-east", tmp_path, "secret", http_client=client
                )

        with pytest.raises(SnapshotError):
            latest_snapshot(tmp_path, "us-east")


# ---------------------------------------------------------------------------
# generate_region_descriptor
# ---------------------------------------------------------------------------


class TestGenerateRegionDescriptor:
    def test_writes_descriptor_and_emits_report(self, tmp_path):
        _save(tmp_path, [_raw_device(1, "S1"), _raw_device(2, "S2")])
        output = tmp_path / "us-east.json"
        emitted: list[str] = []

        result = generate_region_descriptor(
            _config(), "us-east", tmp_path, output, emit=emitted.append
        )

        body = json.loads(output.read_text())
        assert body["nshards"] == 2
        assert [s["uuid"] for s in body["servers"]] == ["uuid-S1", "uuid-S2"]
        assert body["servers"][0]["rack"] == "us-east-1_R01"
        assert result.ok
        assert len(emitted) == 1
        assert "us-east-1" in emitted[0]

    def test_existing_output_is_left_alone(self, tmp_path):
        _save(tmp_path, [_raw_device(1, "S1")])
        output = tmp_path / "us-east.json"
        output.write_text("previous")

        with pytest.raises(OutputExistsError):
            generate_region_descriptor(_config(), "us-east", tmp_path, output, emit=lambda _: None)

        assert output.read_text() == "previous"

    def test_duplicate_serials_block_output_but_still_report(self, tmp_path):
        _save(tmp_path, [_raw_device(1, "S1"), _raw_device(2, "S1")])
        output = tmp_path / "us-east.json"
        emitted: list[str] = []

        with pytest.raises(DuplicateSerialError) as excinfo:
            generate_region_descriptor(
                _config(), "us-east", tmp_path, output, emit=emitted.append
            )

        assert excinfo.value.collisions == [("S1", 1, 2)]
        assert not output.exists()
        assert len(emitted) == 1

    def test_no_snapshot(self, tmp_path):
        with pytest.raises(SnapshotError):
            generate_region_descriptor(
                _config(), "us-east", tmp_path, tmp_path / "out.json", emit=lambda _: None
            )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestMain:
    def _args(self, tmp_path, *rest: str) -> list[str]:
        config_file = tmp_path / "azinventory.json"
        config_file.write_text(json.dumps(_config_dict()))
        return ["-c", str(config_file), "-d", str(tmp_path), *rest]

    def test_generate_succeeds_once(self, tmp_path, capsys):
        _save(tmp_path, [_raw_device(1, "S1")])
        output = str(tmp_path / "out.json")

        assert main(self._args(tmp_path, "generate", "us-east", "-o", output)) == 0
        assert "us-east-1" in capsys.readouterr().out
        assert main(self._args(tmp_path, "generate", "us-east", "-o", output)) == 1

    def test_unknown_region_fails(self, tmp_path):
        assert main(self._args(tmp_path, "generate", "eu-west")) == 1

    def test_missing_config_fails(self, tmp_path):
        missing = str(tmp_path / "missing.json")
        assert main(["-c", missing, "generate", "us-east"]) == 1

    def test_fetch_without_password_or_tty_fails(self, tmp_path, monkeypatch):
        monkeypatch.setattr("azinventory.cli.settings.ASSET_PASSWORD", "")
        monkeypatch.setattr("azinventory.cli.sys.stdin", io.StringIO())

        assert main(self._args(tmp_path, "fetch-inventory", "us-east")) == 1

    def test_usage_error_exits_2(self):
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 2
