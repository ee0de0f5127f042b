"""AppSettings -- azinventory process configuration.

Process-level knobs are read from the environment via pydantic-settings.
The per-region inventory layout lives in a separate JSON file, see
azinventory.schemas.config.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """azinventory settings, loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Region configuration file and local snapshot storage
    CONFIG_FILE: str = "./azinventory.json"
    DATA_DIR: str = "./azinventory_data"

    # Asset system (Device42) password; prompted for when empty
    ASSET_PASSWORD: str = ""

    # Applied to every page request against either upstream
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Page sizes
    ASSET_PAGE_LIMIT: int = 100
    FLEET_PAGE_LIMIT: int = 50


settings = AppSettings()
