"""Reconciliation engine: devices per zone in, descriptor and warnings out.

For each zone, in configuration order:
  1. Build the zone's permitted-rack set
  2. Drop devices with no rack, a rack outside the set, or unmapped
     hardware (counted, never emitted)
  3. Classify by hardware model
  4. Record any serial already seen in this run as a collision; a
     rejected duplicate is not counted anywhere
  5. Fall back to the serial for a missing uuid and to DEFAULT_RAM_GB for
     missing DRAM, and check the hostname convention (all counted)
  6. Emit one Server per accepted device

Collisions do not stop the run. They are collected so that every one of
them is reported together; ReconcileResult.raise_for_errors() turns them
into a single DuplicateSerialError. A device whose building disagrees with
its zone is different: that means the inventory was assembled wrongly, and
reconciliation stops immediately.
"""

import logging
from collections import Counter
from collections.abc import Mapping, Sequence

from azinventory.errors import InvariantViolation
from azinventory.reconcile.classify import HostnameStatus, check_hostname, classify
from azinventory.reconcile.crosscheck import check_configurations, cross_check
from azinventory.reconcile.models import (
    AcceptedDevice,
    ReconcileCounters,
    ReconcileResult,
    ZoneResult,
)
from azinventory.schemas.config import (
    DEFAULT_HARDWARE_ROLES,
    DEFAULT_HOSTNAME_PREFIXES,
    RegionConfig,
    ZoneConfig,
)
from azinventory.schemas.descriptor import (
    Descriptor,
    InventoryWarning,
    Server,
    ServerRole,
    WarningCategory,
)
from azinventory.schemas.inventory import Device, Node

logger = logging.getLogger(__name__)

# DRAM assumed for devices the asset system has no figure for
DEFAULT_RAM_GB = 64


def reconcile_zone(
    zone: ZoneConfig,
    devices: Sequence[Device],
    *,
    hardware_roles: Mapping[str, ServerRole] = DEFAULT_HARDWARE_ROLES,
    hostname_prefixes: Mapping[ServerRole, str] = DEFAULT_HOSTNAME_PREFIXES,
) -> ZoneResult:
    result = ZoneResult(zone=zone.name, racks={rack: Counter() for rack in zone.racks})
    counters = result.counters
    permitted = zone.permitted_racks

    for device in devices:
        if device.building is not None and device.building != zone.building:
            raise InvariantViolation(
                f'device {device.device_id} (serial "{device.serial}") is in '
                f'building "{device.building}", expected "{zone.building}" '
                f'for zone "{zone.name}"'
            )

        if device.rack is None:
            counters.unracked += 1
            continue
        if device.rack not in permitted:
            counters.unknown_rack += 1
            continue

        role = classify(device.hw_model, hardware_roles)
        if role is None:
            counters.unknown_hardware += 1
            continue

        # A rejected duplicate contributes to no counter
        first = result.accepted.get(device.serial)
        if first is not None:
            result.collisions.append(
                (device.serial, first.device.device_id, device.device_id)
            )
            continue

        status = check_hostname(role, device.serial, device.name, hostname_prefixes)
        if status is HostnameStatus.UNEXPECTED:
            logger.debug(
                'device %s: unexpected hostname "%s" for %s server',
                device.device_id,
                device.name,
                role,
            )

        server = Server(
            type=role,
            uuid=device.uuid if device.uuid is not None else device.serial,
            az=zone.name,
            rack=f"{zone.name}_{device.rack}",
            memory=device.ram_gb if device.ram_gb is not None else DEFAULT_RAM_GB,
            degraded_identity=device.uuid is None,
        )
        entry = AcceptedDevice(device=device, server=server, hostname=status)
        result.accepted[device.serial] = entry
        result.racks[device.rack][role] += 1
        counters.tally(entry)

    return result


def _counter_warnings(counters: ReconcileCounters) -> list[InventoryWarning]:
    warnings: list[InventoryWarning] = []
    if counters.missing_uuid > 0:
        warnings.append(
            InventoryWarning(
                WarningCategory.MISSING_UUID,
                f'{counters.missing_uuid} servers are missing a "uuid" property. '
                "Serial numbers have been used in the output file instead of "
                "uuids. The resulting output file cannot be directly used for "
                "deployment, but it can be used to verify the distribution of "
                "instances.",
            )
        )
    if counters.missing_ram > 0:
        warnings.append(
            InventoryWarning(
                WarningCategory.MISSING_RAM,
                f'{counters.missing_ram} servers are missing a "ram" property. '
                f"A default value of {DEFAULT_RAM_GB} GB has been used.",
            )
        )
    if counters.unsetup_hostname > 0:
        warnings.append(
            InventoryWarning(
                WarningCategory.UNSETUP_HOSTNAME,
                f"{counters.unsetup_hostname} servers have a hostname equal to "
                "their serial number and have not been set up yet.",
            )
        )
    if counters.unexpected_hostname > 0:
        warnings.append(
            InventoryWarning(
                WarningCategory.UNEXPECTED_HOSTNAME,
                f"{counters.unexpected_hostname} servers have a hostname that "
                "does not match the naming convention for their role.",
            )
        )
    return warnings


def reconcile(
    region: RegionConfig,
    devices_by_zone: Mapping[str, Sequence[Device]],
    nodes_by_zone: Mapping[str, list[Node] | None] | None = None,
    *,
    hardware_roles: Mapping[str, ServerRole] = DEFAULT_HARDWARE_ROLES,
    hostname_prefixes: Mapping[ServerRole, str] = DEFAULT_HOSTNAME_PREFIXES,
) -> ReconcileResult:
    """Reconcile every zone of a region into one descriptor.

    The returned descriptor's servers are in processing order; see
    azinventory.descriptor for the canonical ordering.
    """
    result = ReconcileResult(descriptor=Descriptor(nshards=region.nshards))

    for zone in region.zones:
        if zone.name not in devices_by_zone:
            raise InvariantViolation(f'no device data for zone "{zone.name}"')

        zone_result = reconcile_zone(
            zone,
            devices_by_zone[zone.name],
            hardware_roles=hardware_roles,
            hostname_prefixes=hostname_prefixes,
        )
        result.collisions.extend(zone_result.collisions)
        for serial, entry in list(zone_result.accepted.items()):
            first = result.accepted.get(serial)
            if first is not None:
                result.collisions.append(
                    (serial, first.device.device_id, entry.device.device_id)
                )
                zone_result.counters.tally(entry, step=-1)
                zone_result.racks[entry.device.rack][entry.server.type] -= 1
                del zone_result.accepted[serial]
                continue
            result.accepted[serial] = entry
            result.descriptor.servers.append(entry.server)

        result.counters.merge(zone_result.counters)
        result.zones.append(zone_result)
        logger.info(
            "zone %s: %d servers accepted",
            zone.name,
            len(zone_result.accepted),
        )

    result.warnings.extend(_counter_warnings(result.counters))
    result.warnings.extend(check_configurations(result.descriptor.servers))
    result.warnings.extend(cross_check(region.zones, result.accepted, nodes_by_zone))

    if result.collisions:
        logger.error("%d duplicate serials found", len(result.collisions))
    return result
