"""Application configuration using pydantic-settings.

Covers endpoints for the Bitcoin UTXO source, XCM version pins, AMM
liquidity guards and the bridge gateway contracts.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="XTRANSFER_",
        extra="ignore",
    )

    # ======================
    # Bitcoin (Esplora API)
    # ======================
    esplora_mainnet_url: str = Field(
        default="https://blockstream.info/api", description="Esplora API for Bitcoin mainnet"
    )
    esplora_testnet_url: str = Field(
        default="https://blockstream.info/testnet/api", description="Esplora API for Bitcoin testnet"
    )
    http_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    default_fee_rate: float = Field(
        default=10.0, description="Fallback fee rate in sat/vB when the fee endpoint fails"
    )

    # ======================
    # XCM
    # ======================
    stable_xcm_version: int = Field(default=3, description="XCM version for regular transfers")
    bridge_xcm_version: int = Field(
        default=4, description="XCM version required by the cross-consensus bridge"
    )

    # ======================
    # Fee-payable assets
    # ======================
    amm_max_pool_share: Decimal = Field(
        default=Decimal("0.01"),
        description="Max share of a pool's candidate reserve a fee swap may consume (1%)",
    )
    amm_pool_fee: Decimal = Field(
        default=Decimal("0.003"), description="Liquidity provider fee of the asset conversion pools"
    )

    # ======================
    # Bridge gateway (EVM side)
    # ======================
    snowbridge_gateway_mainnet: str = Field(
        default="0x27ca963C279c93801941e1eB8799c23f407d68e7",
        description="Bridge gateway contract on Ethereum mainnet",
    )
    snowbridge_gateway_sepolia: str = Field(
        default="0x5B4909cE6Ca82d2CE23BD46738953c7959E710Cd",
        description="Bridge gateway contract on Sepolia",
    )
    bridge_default_gas_limit: int = Field(
        default=200_000, description="Gas limit used when the EVM provider cannot estimate"
    )

    def get_esplora_url(self, testnet: bool) -> str:
        """Get the Esplora base URL for a Bitcoin network."""
        return self.esplora_testnet_url if testnet else self.esplora_mainnet_url

    def get_bridge_gateway(self, testnet: bool) -> str:
        """Get the bridge gateway contract address."""
        return self.snowbridge_gateway_sepolia if testnet else self.snowbridge_gateway_mainnet

    def get_safe_dict(self) -> dict:
        """Return settings dict for diagnostics."""
        return {
            "bitcoin": {
                "mainnet": self.esplora_mainnet_url,
                "testnet": self.esplora_testnet_url,
                "default_fee_rate": self.default_fee_rate,
            },
            "xcm": {
                "stable_version": self.stable_xcm_version,
                "bridge_version": self.bridge_xcm_version,
            },
            "fees": {
                "amm_max_pool_share": str(self.amm_max_pool_share),
                "amm_pool_fee": str(self.amm_pool_fee),
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
