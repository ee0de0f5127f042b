"""Plain-text report of a reconciliation run.

One table per zone with the per-rack role counts, followed by region-wide
totals and the counts of skipped or degraded devices.
"""

from azinventory.reconcile.models import ReconcileResult
from azinventory.schemas.config import RegionConfig
from azinventory.schemas.descriptor import ServerRole


def _rack_row(label: str, metadata: int, storage: int) -> str:
    return f"    {label:<10}  {metadata:>9}  {storage:>9}"


def format_report(region: RegionConfig, result: ReconcileResult) -> str:
    lines: list[str] = []
    for zone, zone_result in zip(region.zones, result.zones):
        lines.append(f"AZ {zone.name} ({len(zone.racks)} racks):")
        lines.append("")
        lines.append(f"    {'RACK':<10}  {'NMETADATA':>9}  {'NSTORAGE':>9}")
        for rack in zone.racks:
            tally = zone_result.racks[rack]
            lines.append(
                _rack_row(rack, tally[ServerRole.METADATA], tally[ServerRole.STORAGE])
            )
        lines.append(
            _rack_row(
                "TOTAL",
                zone_result.role_total(ServerRole.METADATA),
                zone_result.role_total(ServerRole.STORAGE),
            )
        )
        lines.append("")

    counters = result.counters
    lines.append(
        f"{'ALL AZS':<14}  {counters.by_role[ServerRole.METADATA]:>9}  "
        f"{counters.by_role[ServerRole.STORAGE]:>9}"
    )
    lines.append("")
    summary = [
        ("total servers", counters.total_servers),
        ("ignored: servers without a rack", counters.unracked),
        ("ignored: servers in unlisted racks", counters.unknown_rack),
        ("ignored: servers on unmapped hardware", counters.unknown_hardware),
        ('servers with unknown "ram"', counters.missing_ram),
        ('servers with unknown "uuid"', counters.missing_uuid),
        ("servers with hostname not set up", counters.unsetup_hostname),
        ("servers with unexpected hostname", counters.unexpected_hostname),
    ]
    for label, value in summary:
        lines.append(f"{label:<38}  {value:>5}")

    return "\n".join(lines) + "\n"
