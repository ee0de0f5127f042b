"""Checks that span servers or sources, run after every zone is classified.

cross_check compares each accepted device with the fleet system's view of
the same serial. It is all or nothing: if any zone lacks fleet data, no
zone is compared.

check_configurations flags roles whose servers do not share one DRAM size.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping, Sequence

from azinventory.reconcile.models import AcceptedDevice
from azinventory.schemas.config import ZoneConfig
from azinventory.schemas.descriptor import (
    InventoryWarning,
    Server,
    ServerRole,
    WarningCategory,
)
from azinventory.schemas.inventory import Node

RAM_TOLERANCE = 0.01


def ram_mismatch(ram_gb: int, ram_mb: int, tolerance: float = RAM_TOLERANCE) -> bool:
    """True if the two DRAM figures differ by more than tolerance (relative)."""
    expected_mb = ram_gb * 1024
    if expected_mb == 0:
        return ram_mb != 0
    return abs(expected_mb - ram_mb) / expected_mb > tolerance


def _mismatch(message: str) -> InventoryWarning:
    return InventoryWarning(WarningCategory.CROSS_SOURCE_MISMATCH, message)


def cross_check(
    zones: Sequence[ZoneConfig],
    accepted: Mapping[str, AcceptedDevice],
    nodes_by_zone: Mapping[str, list[Node] | None] | None,
) -> list[InventoryWarning]:
    nodes_by_zone = nodes_by_zone or {}
    missing = [z.name for z in zones if nodes_by_zone.get(z.name) is None]
    if missing:
        return [
            InventoryWarning(
                WarningCategory.SOURCE_INCOMPLETE,
                f'fleet data is not present for zone "{name}". Cross-checks '
                "against fleet data have been skipped for all zones.",
            )
            for name in missing
        ]

    warnings: list[InventoryWarning] = []
    index: dict[str, Node] = {}
    for zone in zones:
        for node in nodes_by_zone[zone.name] or []:
            first = index.get(node.serial)
            if first is not None:
                warnings.append(
                    _mismatch(
                        f'fleet server with serial "{node.serial}" appeared more '
                        f"than once (uuid {first.uuid} and {node.uuid})"
                    )
                )
                continue
            index[node.serial] = node

    for serial, entry in accepted.items():
        device = entry.device
        node = index.get(serial)
        if node is None:
            warnings.append(
                _mismatch(
                    f'server "{serial}" (device_id {device.device_id}) not found '
                    "in fleet data"
                )
            )
            continue

        if device.ram_gb is not None and ram_mismatch(device.ram_gb, node.ram_mb):
            warnings.append(
                _mismatch(
                    f'server "{serial}": DRAM mismatch (asset system: '
                    f"{device.ram_gb} GB, fleet: {node.ram_mb} MB)"
                )
            )
        if device.name != node.hostname:
            warnings.append(
                _mismatch(
                    f'server "{serial}": hostname mismatch (asset system: '
                    f'"{device.name}", fleet: "{node.hostname}")'
                )
            )
        if device.uuid is not None and device.uuid != node.uuid:
            warnings.append(
                _mismatch(
                    f'server "{serial}": uuid mismatch (asset system: '
                    f'"{device.uuid}", fleet: "{node.uuid}")'
                )
            )
        if node.headnode:
            warnings.append(_mismatch(f'server "{serial}" is a headnode'))
        if not node.reserved:
            warnings.append(_mismatch(f'server "{serial}" is not reserved'))

    return warnings


def check_configurations(servers: Iterable[Server]) -> list[InventoryWarning]:
    # role -> DRAM -> count. BMC MAC OUI would belong here too once the
    # asset system carries it.
    configs: dict[ServerRole, Counter[int]] = defaultdict(Counter)
    for server in servers:
        configs[server.type][server.memory] += 1

    warnings: list[InventoryWarning] = []
    for role in ServerRole:
        distribution = configs.get(role)
        if not distribution or len(distribution) <= 1:
            continue
        detail = ", ".join(
            f'{count} having ram "{ram}"' for ram, count in sorted(distribution.items())
        )
        warnings.append(
            InventoryWarning(
                WarningCategory.MULTIPLE_CONFIGURATIONS,
                f'found multiple different "{role}" server configurations: {detail}',
            )
        )
    return warnings
