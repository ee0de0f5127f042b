"""Result structures threaded through one reconciliation run.

Everything here is created by a single call to reconcile() and owned by
its caller; nothing is kept at module level between runs.
"""

from collections import Counter
from dataclasses import dataclass, field, fields

from azinventory.errors import DuplicateSerialError
from azinventory.reconcile.classify import HostnameStatus
from azinventory.schemas.descriptor import Descriptor, InventoryWarning, Server, ServerRole
from azinventory.schemas.inventory import Device


@dataclass(frozen=True)
class AcceptedDevice:
    device: Device
    server: Server
    hostname: HostnameStatus = HostnameStatus.OK


@dataclass
class ReconcileCounters:
    unracked: int = 0
    unknown_rack: int = 0
    unknown_hardware: int = 0
    missing_uuid: int = 0
    missing_ram: int = 0
    unsetup_hostname: int = 0
    unexpected_hostname: int = 0
    by_role: Counter = field(default_factory=Counter)

    def tally(self, entry: AcceptedDevice, step: int = 1) -> None:
        """Count one accepted device, or with step=-1 take it back out."""
        if entry.device.uuid is None:
            self.missing_uuid += step
        if entry.device.ram_gb is None:
            self.missing_ram += step
        if entry.hostname is HostnameStatus.UNSETUP:
            self.unsetup_hostname += step
        elif entry.hostname is HostnameStatus.UNEXPECTED:
            self.unexpected_hostname += step
        self.by_role[entry.server.type] += step

    def merge(self, other: "ReconcileCounters") -> None:
        for f in fields(self):
            if f.name == "by_role":
                self.by_role.update(other.by_role)
            else:
                setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))

    @property
    def total_servers(self) -> int:
        return sum(self.by_role.values())


@dataclass
class ZoneResult:
    """Outcome of classifying one zone's devices."""

    zone: str
    racks: dict[str, Counter]
    counters: ReconcileCounters = field(default_factory=ReconcileCounters)
    accepted: dict[str, AcceptedDevice] = field(default_factory=dict)
    collisions: list[tuple[str, int, int]] = field(default_factory=list)

    @property
    def servers(self) -> list[Server]:
        return [entry.server for entry in self.accepted.values()]

    def role_total(self, role: ServerRole) -> int:
        return sum(tally[role] for tally in self.racks.values())


@dataclass
class ReconcileResult:
    descriptor: Descriptor
    counters: ReconcileCounters = field(default_factory=ReconcileCounters)
    zones: list[ZoneResult] = field(default_factory=list)
    accepted: dict[str, AcceptedDevice] = field(default_factory=dict)
    warnings: list[InventoryWarning] = field(default_factory=list)
    collisions: list[tuple[str, int, int]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.collisions

    def raise_for_errors(self) -> None:
        if self.collisions:
            raise DuplicateSerialError(self.collisions)
