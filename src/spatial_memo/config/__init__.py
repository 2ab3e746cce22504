"""Configuration — pydantic-settings models with YAML overlay."""

from spatial_memo.config.settings import (
    AppConfig,
    Cluster,
    Commitment,
    ProgramConfig,
    RPCConfig,
    WalletConfig,
)

__all__ = ["AppConfig", "Cluster", "Commitment", "ProgramConfig", "RPCConfig", "WalletConfig"]
