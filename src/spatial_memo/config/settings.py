"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``SPATIALMEMO_``, nested via ``__``)
2. YAML config file (``SPATIALMEMO_CONFIG_PATH`` env var or ``from_yaml``)
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


class Cluster(enum.StrEnum):
    """Known ledger clusters."""

    DEVNET = "devnet"
    TESTNET = "testnet"
    MAINNET_BETA = "mainnet-beta"
    LOCALNET = "localnet"


class Commitment(enum.StrEnum):
    """Confirmation level a transaction must reach.

    Ordered weakest to strongest; ``satisfies`` compares two levels.
    """

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    def satisfies(self, required: Commitment) -> bool:
        order = list(Commitment)
        return order.index(self) >= order.index(required)


_CLUSTER_ENDPOINTS = {
    Cluster.DEVNET: "https://api.devnet.solana.com",
    Cluster.TESTNET: "https://api.testnet.solana.com",
    Cluster.MAINNET_BETA: "https://api.mainnet-beta.solana.com",
    Cluster.LOCALNET: "http://127.0.0.1:8899",
}

DEFAULT_PROGRAM_ID = "SCRcKjZtuyQHCBTenEpSzKABTqSq5CaKpHRnRgDvgjV"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class RPCConfig(BaseSettings):
    """Ledger node JSON-RPC settings."""

    model_config = SettingsConfigDict(
        env_prefix="SPATIALMEMO_RPC__",
        case_sensitive=False,
    )

    url: str = Field(
        default="",
        description="JSON-RPC endpoint; empty means the cluster's public endpoint",
    )
    commitment: Commitment = Commitment.CONFIRMED
    timeout: float = 30.0
    confirm_timeout: float = 60.0
    poll_interval: float = 0.5

    def endpoint(self, cluster: Cluster) -> str:
        """Resolve the RPC URL, falling back to the cluster default."""
        return self.url or _CLUSTER_ENDPOINTS[cluster]


class ProgramConfig(BaseSettings):
    """Identity of the on-chain memo program."""

    model_config = SettingsConfigDict(
        env_prefix="SPATIALMEMO_PROGRAM__",
        case_sensitive=False,
        frozen=True,
    )

    program_id: str = DEFAULT_PROGRAM_ID
    log_marker_field: str = Field(
        default="name",
        description="Record property searched for in execution logs on fallback",
    )


class WalletConfig(BaseSettings):
    """Payer keypair location."""

    model_config = SettingsConfigDict(
        env_prefix="SPATIALMEMO_WALLET__",
        case_sensitive=False,
    )

    keypair_path: str = "~/.config/solana/id.json"


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``SPATIALMEMO_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPATIALMEMO_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    log_level: str = "INFO"
    cluster: Cluster = Cluster.DEVNET
    config_path: str = ""

    rpc: RPCConfig = Field(default_factory=RPCConfig)
    program: ProgramConfig = Field(default_factory=ProgramConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))

    @property
    def rpc_url(self) -> str:
        return self.rpc.endpoint(self.cluster)
