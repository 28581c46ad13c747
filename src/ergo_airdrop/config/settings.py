"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``AIRDROP_``, nested via ``__``)
2. YAML config file (``AIRDROP_CONFIG_PATH`` env var or ``AppConfig.from_yaml``)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class Network(enum.StrEnum):
    """Ergo network the wallet operates on."""

    MAINNET = "mainnet"
    TESTNET = "testnet"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ExplorerConfig(BaseSettings):
    """Ergo explorer API settings."""

    model_config = SettingsConfigDict(
        env_prefix="AIRDROP_EXPLORER__",
        case_sensitive=False,
    )

    url: str = "https://api.ergoplatform.com/api/v1"
    timeout: float = 10.0


class FeeConfig(BaseSettings):
    """Output floor and miner fee settings (all values in nanoERG)."""

    model_config = SettingsConfigDict(
        env_prefix="AIRDROP_FEE__",
        case_sensitive=False,
    )

    min_box_value: int = Field(
        default=1_000_000,
        description="Protocol floor carried by every token-bearing output",
    )
    default_fee: int = Field(
        default=1_000_000,
        description="Flat fee used for the first build of an airdrop transaction",
    )
    fee_per_kb: int = Field(
        default=1_000_000,
        description="Recommended fee rate per 1024 bytes of estimated size",
    )
    max_tokens_per_box: int = 100


class DiscoveryConfig(BaseSettings):
    """Collection discovery settings."""

    model_config = SettingsConfigDict(
        env_prefix="AIRDROP_DISCOVERY__",
        case_sensitive=False,
    )

    max_concurrency: int = 8
    collection_registers: list[str] = Field(default_factory=lambda: ["R4", "R5"])
    collection_prefix: str = "Collection:"


class NotificationConfig(BaseSettings):
    """Airdrop event delivery settings."""

    model_config = SettingsConfigDict(
        env_prefix="AIRDROP_NOTIFICATIONS__",
        case_sensitive=False,
    )

    webhook_urls: list[str] = Field(default_factory=list)
    webhook_token: str = ""


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _read_settings_file(path: str | Path) -> dict[str, Any]:
    """Settings mapping stored in a YAML file; missing or non-mapping files give ``{}``."""
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    return data if isinstance(data, dict) else {}


def _overlay(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively apply *overrides* on top of *base*; ``None`` overrides are ignored."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _overlay(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``AIRDROP_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="AIRDROP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    network: Network = Network.MAINNET
    config_path: str = ""

    explorer: ExplorerConfig = Field(default_factory=ExplorerConfig)
    fee: FeeConfig = Field(default_factory=FeeConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    @model_validator(mode="before")
    @classmethod
    def _apply_settings_file(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Use the YAML settings file as defaults beneath env and init values."""
        config_path = values.get("config_path")
        if not config_path:
            return values
        return _overlay(_read_settings_file(config_path), values)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
