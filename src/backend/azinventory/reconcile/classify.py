"""Hardware-to-role classification and the hostname naming convention.

Both are pure functions over static tables so they can be tested in
isolation from the engine.
"""

from collections.abc import Mapping
from enum import StrEnum

from azinventory.schemas.config import DEFAULT_HARDWARE_ROLES, DEFAULT_HOSTNAME_PREFIXES
from azinventory.schemas.descriptor import ServerRole


class HostnameStatus(StrEnum):
    OK = "ok"
    UNSETUP = "unsetup"
    UNEXPECTED = "unexpected"


def classify(
    hw_model: str | None,
    hardware_roles: Mapping[str, ServerRole] = DEFAULT_HARDWARE_ROLES,
) -> ServerRole | None:
    """Return the role for a hardware model, or None if it is not deployable."""
    if hw_model is None:
        return None
    return hardware_roles.get(hw_model)


def check_hostname(
    role: ServerRole,
    serial: str,
    hostname: str,
    prefixes: Mapping[ServerRole, str] = DEFAULT_HOSTNAME_PREFIXES,
) -> HostnameStatus:
    """Check a hostname against the <role prefix>...<serial> convention.

    A hostname equal to the serial means the server has not been set up yet.
    """
    if hostname == serial:
        return HostnameStatus.UNSETUP
    prefix = prefixes.get(role, "")
    if (
        len(hostname) >= len(prefix) + len(serial)
        and hostname.startswith(prefix)
        and hostname.endswith(serial)
    ):
        return HostnameStatus.OK
    return HostnameStatus.UNEXPECTED
