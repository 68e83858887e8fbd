"""12-factor configuration adapter using environment variables and TOML config."""

import tomllib
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from transit_bridge.domain.models import Product

SUPPORTED_PROVIDERS = ("navitia", "hafas")
SUPPORTED_NAME_SPLITS = ("none", "comma", "paren", "address")

# Bit order of the HAFAS "cls" product field as used by most German networks.
DEFAULT_HAFAS_PRODUCTS: list[str | None] = [
    "HIGH_SPEED_TRAIN",
    "HIGH_SPEED_TRAIN",
    "HIGH_SPEED_TRAIN",
    "REGIONAL_TRAIN",
    "SUBURBAN_TRAIN",
    "BUS",
    "FERRY",
    "SUBWAY",
    "TRAM",
    "ON_DEMAND",
]


class TransitConfig(BaseSettings):
    """Transit backend configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend selection
    provider: str = Field(default="navitia", description="Backend kind: 'navitia' or 'hafas'")
    network: str = Field(default="default", description="Network name reported in results")
    timezone: str = Field(
        default="Europe/Berlin", description="Timezone the backend expresses local times in"
    )

    # HTTP transport
    http_timeout_seconds: float = Field(
        default=15.0, description="Total timeout per request attempt in seconds"
    )
    http_connect_timeout_seconds: float = Field(
        default=5.0, description="Connect timeout per request attempt in seconds"
    )
    http_max_retries: int = Field(
        default=2, description="Additional attempts on an empty body or a timeout"
    )
    user_agent: str = Field(default="transit-bridge/0.1", description="User-Agent header")
    log_requests: bool = Field(default=False, description="Log every outgoing backend request")
    log_request_body_chars: int = Field(
        default=2000, description="Request bodies are cut to this many characters in the log"
    )

    # Navitia
    navitia_api_base: str = Field(
        default="https://api.navitia.io/v1/", description="Navitia API base URL"
    )
    navitia_region: str = Field(default="default", description="Navitia coverage region")
    navitia_authorization: str | None = Field(
        default=None, description="Navitia API token sent as the Authorization header"
    )
    navitia_num_trips: int = Field(default=4, description="Minimum number of journeys to ask for")

    # HAFAS client interface
    hafas_api_base: str = Field(
        default="https://reiseauskunft.bahn.de/bin/", description="HAFAS base URL"
    )
    hafas_api_endpoint: str = Field(default="mgate.exe", description="HAFAS mgate endpoint")
    hafas_api_version: str = Field(default="1.44", description="HAFAS client interface version")
    hafas_api_ext: str | None = Field(
        default=None, description="HAFAS extension, e.g. 'DB.R20.12.b'"
    )
    hafas_api_client: dict[str, Any] = Field(
        default_factory=lambda: {"id": "HAFAS", "type": "AND"},
        description="HAFAS client object (JSON)",
    )
    hafas_api_auth: dict[str, Any] = Field(
        default_factory=lambda: {"type": "AID", "aid": ""},
        description="HAFAS auth object (JSON)",
    )
    hafas_checksum_salt: str | None = Field(
        default=None, description="Hex salt for the request checksum parameter"
    )
    hafas_mic_mac_salt: str | None = Field(
        default=None, description="Hex salt for the mic/mac request parameters"
    )
    hafas_products: list[str | None] = Field(
        default_factory=lambda: list(DEFAULT_HAFAS_PRODUCTS),
        description="Product names per HAFAS product bit, null for unused bits (JSON)",
    )
    hafas_station_name_split: str = Field(
        default="none", description="How station names split into place and name"
    )
    hafas_address_split: str = Field(
        default="address", description="How address names split into place and name"
    )

    # Optional TOML file with line styles
    config_file: str | None = Field(
        default=None, description="Path to a TOML file with [line_styles] tables"
    )

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate provider is one of the supported backends."""
        if v.lower() not in SUPPORTED_PROVIDERS:
            raise ValueError(f"provider must be one of {', '.join(SUPPORTED_PROVIDERS)}")
        return v.lower()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone is known to zoneinfo."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("http_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate the retry count is small and not negative."""
        if not 0 <= v <= 2:
            raise ValueError("http_max_retries must be between 0 and 2")
        return v

    @field_validator("hafas_products")
    @classmethod
    def validate_hafas_products(cls, v: list[str | None]) -> list[str | None]:
        """Validate every non-null entry names a product."""
        for name in v:
            if name is not None and name not in Product.__members__:
                raise ValueError(f"Unknown product in hafas_products: {name}")
        return v

    @field_validator("hafas_checksum_salt", "hafas_mic_mac_salt")
    @classmethod
    def validate_salt(cls, v: str | None) -> str | None:
        """Validate salts are hex encoded."""
        if v is not None:
            try:
                bytes.fromhex(v)
            except ValueError as e:
                raise ValueError("HAFAS salts must be hex encoded") from e
        return v

    @field_validator("hafas_station_name_split", "hafas_address_split")
    @classmethod
    def validate_name_split(cls, v: str) -> str:
        """Validate the name split style is known."""
        if v not in SUPPORTED_NAME_SPLITS:
            raise ValueError(f"name split must be one of {', '.join(SUPPORTED_NAME_SPLITS)}")
        return v

    def get_zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def get_hafas_products_map(self) -> tuple[Product | None, ...]:
        return tuple(Product[name] if name else None for name in self.hafas_products)

    def get_hafas_salts(self) -> tuple[bytes | None, bytes | None]:
        """Checksum and mic/mac salts as bytes."""
        return (
            bytes.fromhex(self.hafas_checksum_salt) if self.hafas_checksum_salt else None,
            bytes.fromhex(self.hafas_mic_mac_salt) if self.hafas_mic_mac_salt else None,
        )

    def _load_toml_data(self) -> dict[str, Any]:
        """Load and parse the TOML file."""
        if not self.config_file:
            raise ValueError("config_file must be set to load line styles")

        config_path = Path(self.config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "rb") as f:
            return tomllib.load(f)

    def get_line_styles_config(self) -> dict[str, dict[str, Any]]:
        """Return the ``[line_styles]`` tables, keyed by style key.

        Keys with a network use the ``"network|<code><label>"`` form and
        need quoting in TOML.
        """
        if not self.config_file:
            return {}
        line_styles = self._load_toml_data().get("line_styles", {})
        if not isinstance(line_styles, dict):
            raise ValueError("TOML config 'line_styles' must be a table")
        for key, entry in line_styles.items():
            if not isinstance(entry, dict):
                raise ValueError(f"TOML line style '{key}' must be a table")
        return line_styles
