"""Allow-listed-currency fee-asset strategy.

Used on chains with a multi-currency transaction payment pallet: an asset
can pay fees if its on-chain id is in the accepted currencies registry.
Rates come from the external price map.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from xtransfer.chains import ChainAsset
from xtransfer.errors import (
    NoLiquidityError,
    RpcFailureError,
    UnsupportedProtocolError,
    XTransferError,
)
from xtransfer.fees.base import (
    AcceptedCurrencySource,
    AssetBalance,
    FeeAssetStrategy,
    FeePayableAsset,
)

logger = logging.getLogger(__name__)

PriceMap = dict[str, Union[Decimal, float, str]]


@dataclass
class AllowListContext:
    """Registry ids and native pricing shared by every candidate."""

    accepted_ids: frozenset
    native_price: Decimal
    native_decimals: int


def normalize_currency_id(currency_id: object) -> str:
    """Registry ids may come back human-formatted ("1,000")."""
    return str(currency_id).replace(",", "")


def conversion_rate(
    native_price: Decimal, native_decimals: int, candidate_price: Decimal, candidate_decimals: int
) -> Decimal:
    """Candidate smallest units per native smallest unit."""
    return native_price / candidate_price * Decimal(10) ** (candidate_decimals - native_decimals)


class AllowListStrategy(FeeAssetStrategy):
    """Prices candidates accepted by the chain's fee currency registry."""

    def __init__(
        self,
        currency_source: AcceptedCurrencySource,
        price_map: PriceMap,
        chain_slug: str,
        default_fee_asset: Optional[ChainAsset] = None,
    ):
        self.currency_source = currency_source
        self.price_map = price_map
        self.chain_slug = chain_slug
        self.default_fee_asset = default_fee_asset

    @property
    def name(self) -> str:
        return "allow_list"

    def _price(self, asset: ChainAsset) -> Decimal:
        if not asset.price_id or asset.price_id not in self.price_map:
            raise NoLiquidityError(f"No price for {asset.slug}")

        try:
            price = Decimal(str(self.price_map[asset.price_id]))
        except InvalidOperation as e:
            raise NoLiquidityError(f"Invalid price for {asset.slug}") from e

        if price <= 0:
            raise NoLiquidityError(f"Non-positive price for {asset.slug}")
        return price

    def select_candidates(self, native: ChainAsset, balances: list[AssetBalance]) -> list[AssetBalance]:
        return [
            balance
            for balance in balances
            if balance.asset.origin_chain == self.chain_slug
            and not balance.asset.is_native
            and balance.asset.asset_id is not None
        ]

    async def prepare(self, native: ChainAsset) -> AllowListContext:
        try:
            accepted = await self.currency_source.get_accepted_currencies(self.chain_slug)
        except XTransferError:
            raise
        except Exception as e:
            raise RpcFailureError(f"Failed to fetch accepted currencies on {self.chain_slug}: {e}") from e

        return AllowListContext(
            accepted_ids=frozenset(normalize_currency_id(currency_id) for currency_id in accepted),
            native_price=self._price(native),
            native_decimals=native.decimals,
        )

    async def evaluate(
        self,
        native: ChainAsset,
        candidate: AssetBalance,
        context: AllowListContext,
        fee_amount: Optional[int] = None,
    ) -> FeePayableAsset:
        asset = candidate.asset
        if normalize_currency_id(asset.asset_id) not in context.accepted_ids:
            raise UnsupportedProtocolError(f"{asset.slug} is not an accepted fee currency")

        rate = conversion_rate(
            context.native_price, context.native_decimals, self._price(asset), asset.decimals
        )
        return FeePayableAsset(slug=candidate.slug, free=candidate.free, rate=rate)

    def supplementary_assets(
        self, native: ChainAsset, listed: list[str], context: AllowListContext
    ) -> list[FeePayableAsset]:
        default = self.default_fee_asset
        if default is None or default.is_native or default.slug in listed:
            return []

        try:
            price = self._price(default)
        except NoLiquidityError as e:
            logger.warning(f"Default fee token {default.slug} not listed: {e.message}")
            return []

        rate = conversion_rate(context.native_price, context.native_decimals, price, default.decimals)
        return [FeePayableAsset(slug=default.slug, free="0", rate=rate)]
