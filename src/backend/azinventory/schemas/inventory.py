"""Typed records for the two upstream inventories.

Raw JSON from either API is validated into one of these frozen models at
ingestion time. Nothing downstream ever touches the raw dicts.
"""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
    model_validator,
)


class Device(BaseModel):
    """A device as reported by the asset-management system (Device42)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device_id: int
    serial: str = Field(alias="serial_no", min_length=1)
    name: str
    hw_model: str | None = None
    building: str | None = None
    rack: str | None = None
    uuid: str | None = None
    ram_gb: int | None = Field(default=None, alias="ram")
    start_at: int

    @field_validator("hw_model", "building", "rack", "uuid", "ram_gb", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        # Device42 reports unset attributes as "" rather than omitting them
        if isinstance(value, str) and not value.strip():
            return None
        return value


class NodeSysinfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    serial: str = Field(alias="Serial Number", min_length=1)
    product: str = Field(alias="Product")


class Node(BaseModel):
    """A compute node as reported by the fleet-management system (CNAPI)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uuid: str
    hostname: str
    headnode: StrictBool
    reserved: StrictBool
    ram_mb: int = Field(alias="ram")
    sysinfo: NodeSysinfo

    @property
    def serial(self) -> str:
        return self.sysinfo.serial

    @property
    def product(self) -> str:
        return self.sysinfo.product


class AssetDevicePage(BaseModel):
    """Envelope of one /api/1.0/devices/all/ response page."""

    model_config = ConfigDict(populate_by_name=True)

    total_count: int = Field(ge=0)
    limit: int | None = None
    offset: int | None = None
    devices: list[dict[str, Any]] | None = Field(default=None, alias="Devices")

    @model_validator(mode="after")
    def _paging_fields_present(self) -> "AssetDevicePage":
        # An empty result set may omit the paging fields entirely
        if self.total_count > 0 and (
            self.limit is None or self.offset is None or self.devices is None
        ):
            raise ValueError("non-empty page is missing limit, offset or Devices")
        return self
