"""
Engine configuration — chain table and typed settings.

``EngineConfig.from_env()`` reads ``TINK_*`` variables; the CLI layers its
``~/.tink/config.json`` on top.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel

NetworkName = Literal["avalanche", "avalanche-fuji"]

USDC_DECIMALS = 6


class ChainConfig(BaseModel):
    chain_id: int
    name: str
    network: str
    usdc: str
    explorer: str
    rpc: str


CHAINS: dict[str, ChainConfig] = {
    "avalanche": ChainConfig(
        chain_id=43114,
        name="Avalanche C-Chain",
        network="avalanche",
        usdc="0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
        explorer="https://snowtrace.io",
        rpc="https://api.avax.network/ext/bc/C/rpc",
    ),
    "avalanche-fuji": ChainConfig(
        chain_id=43113,
        name="Avalanche Fuji Testnet",
        network="avalanche-fuji",
        usdc="0x5425890298aed601595a70AB815c96711a31Bc65",
        explorer="https://testnet.snowtrace.io",
        rpc="https://api.avax-test.network/ext/bc/C/rpc",
    ),
}


class EngineConfig(BaseModel):
    network: NetworkName = "avalanche-fuji"
    scheme: Literal["exact"] = "exact"
    x402_version: int = 1
    max_timeout_seconds: int = 300
    session_ttl_seconds: int = 30 * 60
    asset_decimals: int = USDC_DECIMALS
    asset_name: str = "USD Coin"
    asset_version: str = "2"
    currency: str = "USDC"
    webhook_secret: Optional[str] = None
    facilitator_url: Optional[str] = None
    facilitator_token: Optional[str] = None

    @property
    def chain(self) -> ChainConfig:
        return CHAINS[self.network]

    @classmethod
    def from_env(cls, **overrides) -> "EngineConfig":
        values: dict = {}
        network = os.environ.get("TINK_NETWORK")
        if network:
            values["network"] = network
        elif os.environ.get("TINK_CHAIN_ID"):
            # Only the mainnet id selects mainnet; anything else stays on the testnet.
            values["network"] = "avalanche" if os.environ["TINK_CHAIN_ID"] == "43114" else "avalanche-fuji"
        for env, field in (
            ("TINK_WEBHOOK_SECRET", "webhook_secret"),
            ("TINK_FACILITATOR_URL", "facilitator_url"),
            ("TINK_FACILITATOR_TOKEN", "facilitator_token"),
            ("TINK_SESSION_TTL", "session_ttl_seconds"),
        ):
            if os.environ.get(env):
                values[field] = os.environ[env]
        values.update(overrides)
        return cls.model_validate(values)
