"""Oracle settings: endpoint pools, timeouts and cache policy."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    DEFAULT_BASE_RPC_URLS,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_ETHEREUM_RPC_URLS,
    DEFAULT_OPTIMISM_RPC_URLS,
    DEFAULT_OSMOSIS_LCD_URLS,
)
from .domain import ChainId

load_dotenv()

REDACTED = "***redacted***"
_SECRET_QUERY_KEYS = {"apikey", "api_key", "key", "token", "access_token"}


def redact_url(url: str) -> str:
    """Hide credentials embedded in an endpoint URL (userinfo, API-key params)."""
    parts = urlsplit(url)
    netloc = parts.netloc
    if "@" in netloc:
        netloc = f"{REDACTED}@{netloc.rsplit('@', 1)[1]}"
    query = parts.query
    if query:
        query = urlencode(
            [
                (k, REDACTED if k.lower() in _SECRET_QUERY_KEYS else v)
                for k, v in parse_qsl(query, keep_blank_values=True)
            ],
            safe="*",
        )
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


CONFIG_ENV_VAR = "PAGE_ORACLE_CONFIG"
CONFIG_TABLE = "page_oracle"


def config_file_candidates() -> list[Path]:
    """Config files to look at, in order. An explicit path disables the defaults."""
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return [Path(explicit)]
    return [
        Path("page-oracle.toml"),
        Path.home() / ".config" / "page-oracle" / "config.toml",
    ]


class TomlFileSource(PydanticBaseSettingsSource):
    """Reads the first existing TOML config file.

    Keys may sit at the top level or inside a ``[page_oracle]`` table.
    """

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        path = next((p for p in config_file_candidates() if p.is_file()), None)
        if path is None:
            return {}
        data = tomllib.loads(path.read_text())
        table = data.get(CONFIG_TABLE, data)
        return table if isinstance(table, dict) else {}


class OracleSettings(BaseSettings):
    """Oracle configuration.

    Precedence, highest first: init kwargs (the CLI), PAGE_ORACLE_* environment
    variables, a `.env` file, then the TOML config file.
    """

    # --- endpoints (primary first, then backups) ---
    ethereum_rpc_urls: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ETHEREUM_RPC_URLS)
    )
    optimism_rpc_urls: list[str] = Field(
        default_factory=lambda: list(DEFAULT_OPTIMISM_RPC_URLS)
    )
    base_rpc_urls: list[str] = Field(default_factory=lambda: list(DEFAULT_BASE_RPC_URLS))
    osmosis_lcd_urls: list[str] = Field(
        default_factory=lambda: list(DEFAULT_OSMOSIS_LCD_URLS)
    )
    lcd_liveness_check: bool = True

    # --- cache and timeouts ---
    cache_ttl_seconds: float = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        gt=0,
        description="How long a snapshot is served before the next read refreshes it.",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to every single RPC/LCD call.",
    )
    chain_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for one chain's complete fetch in a refresh cycle.",
    )

    # --- aggregation ---
    min_liquidity_usd: float = Field(
        default=0.0,
        ge=0,
        description="Chains whose TVL is below this do not weigh the aggregate price.",
    )
    excluded_chains: list[ChainId] = Field(
        default_factory=list,
        description="Chains still priced and reported but left out of the aggregate price.",
    )
    manual_weights: dict[ChainId, float] | None = Field(
        default=None,
        description="Fixed per-chain weights used instead of TVL; unnamed chains weigh zero.",
    )

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PAGE_ORACLE_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator(
        "ethereum_rpc_urls",
        "optimism_rpc_urls",
        "base_rpc_urls",
        "osmosis_lcd_urls",
        "excluded_chains",
        mode="before",
    )
    @classmethod
    def split_comma_list(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("manual_weights")
    @classmethod
    def validate_manual_weights(
        cls, v: dict[ChainId, float] | None
    ) -> dict[ChainId, float] | None:
        if v is None:
            return v
        if any(weight < 0 for weight in v.values()):
            raise ValueError("manual_weights must not be negative")
        if not any(weight > 0 for weight in v.values()):
            raise ValueError("manual_weights needs at least one positive weight")
        return v

    @model_validator(mode="after")
    def validate_timeout_ordering(self) -> "OracleSettings":
        """A chain fetch must be allowed at least one full request."""
        if self.chain_timeout_seconds < self.request_timeout_seconds:
            raise ValueError(
                f"chain_timeout_seconds ({self.chain_timeout_seconds}) "
                f"must be greater than or equal to request_timeout_seconds ({self.request_timeout_seconds})"
            )
        return self

    @model_validator(mode="after")
    def validate_excluded_chains(self) -> "OracleSettings":
        if set(ChainId) <= set(self.excluded_chains):
            raise ValueError("excluded_chains leaves no chain to aggregate")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlFileSource(settings_cls),
            file_secret_settings,
        )

    def endpoints_for(self, chain: ChainId) -> list[str]:
        """Ordered, de-duplicated endpoint list for ``chain``."""
        match chain:
            case ChainId.ETHEREUM:
                urls = self.ethereum_rpc_urls
            case ChainId.OPTIMISM:
                urls = self.optimism_rpc_urls
            case ChainId.BASE:
                urls = self.base_rpc_urls
            case ChainId.OSMOSIS:
                urls = self.osmosis_lcd_urls
        return list(dict.fromkeys(url.rstrip("/") for url in urls if url))

    def endpoint_pools(self) -> dict[ChainId, list[str]]:
        return {chain: self.endpoints_for(chain) for chain in ChainId}

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with endpoint credentials redacted."""
        data = self.model_dump(mode="json")
        for key in (
            "ethereum_rpc_urls",
            "optimism_rpc_urls",
            "base_rpc_urls",
            "osmosis_lcd_urls",
        ):
            data[key] = [redact_url(url) for url in data[key]]
        return data
