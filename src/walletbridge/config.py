import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DEFAULT_GAS_LIMIT,
    GAS_ESTIMATION_BUFFER,
    RECEIPT_POLL_INTERVAL_SECONDS,
)

__all__ = [
    "Network",
    "NetworkConfig",
    "NETWORKS",
    "get_network_config",
    "get_network_by_chain_id",
    "Settings",
    "load_settings",
]


class Network(str, Enum):
    SEPOLIA = "sepolia"
    POLYGON_AMOY = "polygon-amoy"
    GOERLI = "goerli"
    HARDHAT = "hardhat"


@dataclass(frozen=True)
class NetworkConfig:
    name: Network
    chain_id: str
    display_name: str
    rpc_url: str


NETWORKS: dict[Network, NetworkConfig] = {
    Network.SEPOLIA: NetworkConfig(
        name=Network.SEPOLIA,
        chain_id="11155111",
        display_name="Sepolia",
        rpc_url="https://rpc.sepolia.org",
    ),
    Network.POLYGON_AMOY: NetworkConfig(
        name=Network.POLYGON_AMOY,
        chain_id="80002",
        display_name="Amoy",
        rpc_url="https://rpc-amoy.polygon.technology",
    ),
    # Deprecated testnet, kept so older deployments still resolve
    Network.GOERLI: NetworkConfig(
        name=Network.GOERLI,
        chain_id="5",
        display_name="Goerli",
        rpc_url="https://rpc.ankr.com/eth_goerli",
    ),
    Network.HARDHAT: NetworkConfig(
        name=Network.HARDHAT,
        chain_id="31337",
        display_name="Hardhat",
        rpc_url="http://127.0.0.1:8545",
    ),
}


def get_network_config(network: Network, rpc_url: Optional[str] = None) -> NetworkConfig:
    cfg = NETWORKS[network]
    if rpc_url:
        return replace(cfg, rpc_url=rpc_url)
    return cfg


def get_network_by_chain_id(chain_id: str) -> Optional[NetworkConfig]:
    """Look up a known network by its decimal chain id string."""
    for cfg in NETWORKS.values():
        if cfg.chain_id == str(chain_id):
            return cfg
    return None


class Settings(BaseModel):
    """
    Runtime settings for the contract interaction client.

    Values come from ``WALLETBRIDGE_*`` environment variables, optionally
    loaded from a ``.env`` file first.
    """

    model_config = ConfigDict(frozen=True)

    default_gas_limit: int = Field(
        default=DEFAULT_GAS_LIMIT,
        gt=0,
        description="Upper bound applied to estimated gas and used on estimation failure",
    )
    gas_buffer: float = Field(
        default=GAS_ESTIMATION_BUFFER,
        ge=1.0,
        description="Safety margin multiplied into gas estimates",
    )
    poll_interval: float = Field(
        default=RECEIPT_POLL_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between receipt polls while a transaction is pending",
    )
    rpc_url: Optional[str] = Field(
        default=None,
        description="JSON-RPC endpoint for Web3Provider",
    )
    log_level: str = Field(
        default="WARNING",
        description="Level passed to configure_logging()",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


_ENV_FIELDS = {
    "WALLETBRIDGE_DEFAULT_GAS_LIMIT": "default_gas_limit",
    "WALLETBRIDGE_GAS_BUFFER": "gas_buffer",
    "WALLETBRIDGE_POLL_INTERVAL": "poll_interval",
    "WALLETBRIDGE_RPC_URL": "rpc_url",
    "WALLETBRIDGE_LOG_LEVEL": "log_level",
}


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment, after loading ``.env``.

    Raw strings are handed to pydantic, which converts and validates them.

    Raises:
        pydantic.ValidationError: If a variable holds a malformed value
    """
    load_dotenv(env_file)
    values = {field: os.environ[var] for var, field in _ENV_FIELDS.items() if os.getenv(var)}
    return Settings.model_validate(values)
