"""Pydantic schemas for the region configuration file.

The file describes the asset system to query and, for each region, the
shard count and the availability zones that make it up:

    {
      "asset_system": {"url": "https://d42.example.com/", "username": "ro"},
      "regions": {
        "us-east": {
          "nshards": 4,
          "zones": [
            {"name": "us-east-1", "building": "DC1", "racks": ["R01"],
             "fleet_endpoint": "10.0.0.5"}
          ]
        }
      }
    }

Unknown keys are rejected at every level.
"""

import ipaddress
import json
from pathlib import Path
from typing import Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from azinventory.errors import ConfigurationError
from azinventory.schemas.descriptor import ServerRole

DEFAULT_HARDWARE_ROLES: dict[str, ServerRole] = {
    "Joyent-Compute-Platform-3301": ServerRole.METADATA,
    "Joyent-Storage-Platform-7001": ServerRole.STORAGE,
}

DEFAULT_HOSTNAME_PREFIXES: dict[ServerRole, str] = {
    ServerRole.METADATA: "MS",
    ServerRole.STORAGE: "SS",
}

NonEmptyStr = Annotated[str, Field(min_length=1)]


class AssetSystemConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: NonEmptyStr
    username: NonEmptyStr


class ZoneConfig(BaseModel):
    """Static topology of one availability zone."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: NonEmptyStr
    building: NonEmptyStr
    racks: list[NonEmptyStr] = Field(min_length=1)
    fleet_endpoint: NonEmptyStr | None = None

    @field_validator("fleet_endpoint")
    @classmethod
    def _fleet_endpoint_is_ip(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                ipaddress.ip_address(value)
            except ValueError:
                raise ValueError(f'fleet endpoint must be an IP address: "{value}"') from None
        return value

    @property
    def permitted_racks(self) -> frozenset[str]:
        return frozenset(self.racks)


class RegionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    nshards: int = Field(ge=1, le=128)
    zones: list[ZoneConfig] = Field(min_length=1, max_length=3)

    @model_validator(mode="after")
    def _zones_distinct(self) -> "RegionConfig":
        names = [z.name for z in self.zones]
        if len(set(names)) != len(names):
            raise ValueError(f"zone names must be unique: {names}")
        buildings = [z.building for z in self.zones]
        if len(set(buildings)) != len(buildings):
            raise ValueError(f"zone buildings must be unique: {buildings}")
        return self


class InventoryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    asset_system: AssetSystemConfig
    hardware_roles: dict[str, ServerRole] = Field(
        default_factory=lambda: dict(DEFAULT_HARDWARE_ROLES)
    )
    hostname_prefixes: dict[ServerRole, str] = Field(
        default_factory=lambda: dict(DEFAULT_HOSTNAME_PREFIXES)
    )
    regions: dict[str, RegionConfig] = Field(min_length=1)

    def region(self, name: str) -> RegionConfig:
        try:
            return self.regions[name]
        except KeyError:
            raise ConfigurationError(f'unknown region: "{name}"') from None


def load_config(path: str | Path) -> InventoryConfig:
    """Read, parse and validate the region configuration file."""
    path = Path(path)
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f'read "{path}": {exc}') from exc

    try:
        parsed = json.loads(contents)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f'parse "{path}": {exc}') from exc

    try:
        return InventoryConfig.model_validate(parsed)
    except ValidationError as exc:
        raise ConfigurationError(f'validate "{path}": {exc}') from exc
