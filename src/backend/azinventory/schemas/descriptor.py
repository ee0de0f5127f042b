"""Pydantic schemas for the deployment descriptor and reconciliation warnings."""

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ServerRole(StrEnum):
    METADATA = "metadata"
    STORAGE = "storage"


class Server(BaseModel):
    """One deployable server as it appears in the descriptor.

    ``uuid`` is the resolved identifier. When the asset system had no uuid
    it holds the serial number instead and ``degraded_identity`` is set; the
    flag never reaches the serialized output.
    """

    model_config = ConfigDict(frozen=True)

    type: ServerRole
    uuid: str
    az: str
    rack: str
    memory: int
    degraded_identity: bool = Field(default=False, exclude=True)


class Descriptor(BaseModel):
    nshards: int = Field(ge=1)
    servers: list[Server] = []


class WarningCategory(StrEnum):
    MISSING_UUID = "missing-uuid"
    MISSING_RAM = "missing-ram"
    UNSETUP_HOSTNAME = "unsetup-hostname"
    UNEXPECTED_HOSTNAME = "unexpected-hostname"
    MULTIPLE_CONFIGURATIONS = "multiple-configurations"
    CROSS_SOURCE_MISMATCH = "cross-source-mismatch"
    SOURCE_INCOMPLETE = "source-incomplete"


@dataclass(frozen=True)
class InventoryWarning:
    category: WarningCategory
    message: str

    def __str__(self) -> str:
        return f"[{self.category}] {self.message}"
