"""azinventory error hierarchy.

All fatal conditions inherit from InventoryError. The CLI converts these to
a single log line and a process exit code; nothing below the CLI prints or
exits on its own.
"""


class InventoryError(Exception):
    exit_code: int = 1
    code: str = "INVENTORY_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(InventoryError):
    code = "CONFIGURATION_ERROR"


class FetchError(InventoryError):
    code = "FETCH_ERROR"


class RecordValidationError(InventoryError):
    code = "RECORD_INVALID"


class NoDevicesError(InventoryError):
    code = "NO_DEVICES"


class SnapshotError(InventoryError):
    code = "SNAPSHOT_ERROR"


class InvariantViolation(InventoryError):
    code = "INVARIANT_VIOLATION"


class OutputExistsError(InventoryError):
    code = "OUTPUT_EXISTS"


class DuplicateSerialError(InventoryError):
    """Every serial that appeared more than once in a run, reported together."""

    code = "DUPLICATE_SERIAL"

    def __init__(self, collisions: list[tuple[str, int, int]]) -> None:
        self.collisions = list(collisions)
        lines = [
            f'server having serial "{serial}" appeared more than once '
            f"(device_id {first} and {second})"
            for serial, first, second in self.collisions
        ]
        if len(lines) == 1:
            message = lines[0]
        else:
            message = f"{len(lines)} duplicate serials: " + "; ".join(lines)
        super().__init__(message)
