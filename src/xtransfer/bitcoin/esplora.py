"""Esplora API client for UTXOs, previous transactions and fee rates.

Works against Blockstream.info and mempool.space, which both expose the
Esplora REST API.
Docs: https://github.com/Blockstream/esplora/blob/master/API.md
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from xtransfer.bitcoin.coinselect import Utxo
from xtransfer.config import Settings, get_settings
from xtransfer.errors import RpcFailureError

logger = logging.getLogger(__name__)

# confirmation targets (blocks) for each speed
FAST_TARGET = "1"
AVERAGE_TARGET = "6"
SLOW_TARGET = "144"


class UtxoSource(Protocol):
    """Anything that can list the spendable UTXOs of an address."""

    async def get_utxos(self, address: str) -> list[Utxo]:
        ...


class TxHexSource(Protocol):
    """Anything that can return the raw hex of a transaction."""

    async def get_tx_hex(self, txid: str) -> str:
        ...


@dataclass
class BitcoinFeeRates:
    """Fee rates in sat/vB."""

    slow: float
    average: float
    fast: float

    def get(self, option: str = "average") -> float:
        if option not in ("slow", "average", "fast"):
            raise ValueError(f"Unknown fee option: {option}")
        return getattr(self, option)


class EsploraClient:
    """Bitcoin data source using the Esplora REST API.

    Example:
        async with EsploraClient(testnet=True) as client:
            utxos = await client.get_utxos("tb1q...")
    """

    def __init__(
        self,
        testnet: bool = False,
        base_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Esplora client.

        Args:
            testnet: Use the testnet endpoint if True
            base_url: Override the configured endpoint
            settings: Optional settings
            transport: Optional httpx transport (tests)
        """
        self.settings = settings or get_settings()
        self.testnet = testnet
        self.base_url = (base_url or self.settings.get_esplora_url(testnet)).rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.http_timeout,
                transport=self._transport,
            )
        return self._client

    async def _get(self, path: str) -> httpx.Response:
        client = await self._get_client()
        url = f"{self.base_url}{path}"

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Esplora API error for {path}: {e}")
            raise RpcFailureError(f"Esplora request {path} failed: {e}") from e

        return response

    async def get_utxos(self, address: str) -> list[Utxo]:
        """Get unspent outputs of an address.

        Args:
            address: Bitcoin address

        Returns:
            List of UTXOs (confirmed and unconfirmed)
        """
        response = await self._get(f"/address/{address}/utxo")

        try:
            return [
                Utxo(
                    txid=item["txid"],
                    vout=int(item["vout"]),
                    value=int(item["value"]),
                    address=address,
                    confirmed=bool(item.get("status", {}).get("confirmed", False)),
                )
                for item in response.json()
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise RpcFailureError(f"Malformed UTXO response for {address}: {e}") from e

    async def get_tx_hex(self, txid: str) -> str:
        """Get the raw transaction hex."""
        response = await self._get(f"/tx/{txid}/hex")
        tx_hex = response.text.strip()

        try:
            bytes.fromhex(tx_hex)
        except ValueError as e:
            raise RpcFailureError(f"Malformed transaction hex for {txid}") from e

        return tx_hex

    async def get_fee_rates(self) -> BitcoinFeeRates:
        """Get slow/average/fast fee rates.

        Falls back to the configured default rate when the endpoint fails.
        """
        fallback = self.settings.default_fee_rate

        try:
            response = await self._get("/fee-estimates")
            estimates = response.json()
        except (RpcFailureError, ValueError) as e:
            logger.warning(f"Failed to fetch BTC fee estimates, using {fallback} sat/vB: {e}")
            return BitcoinFeeRates(slow=fallback, average=fallback, fast=fallback)

        def rate(target: str) -> float:
            return float(estimates.get(target, fallback))

        return BitcoinFeeRates(
            slow=rate(SLOW_TARGET),
            average=rate(AVERAGE_TARGET),
            fast=rate(FAST_TARGET),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "EsploraClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
