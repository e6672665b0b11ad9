"""AMM-reserve fee-asset strategy.

Used on chains with an asset-conversion pallet: an asset can pay fees if a
{native, asset} pool exists with enough liquidity to swap the fee.
"""

import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Optional

from xtransfer.chains import ChainAsset
from xtransfer.config import Settings, get_settings
from xtransfer.errors import ExcessiveSlippageError, NoLiquidityError
from xtransfer.fees.base import (
    AmmReserve,
    AssetBalance,
    FeeAssetStrategy,
    FeePayableAsset,
    PoolReserveSource,
)

logger = logging.getLogger(__name__)


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int, pool_fee: Decimal) -> int:
    """Input needed to receive ``amount_out`` from a constant-product pool.

    Raises:
        ExcessiveSlippageError: ``amount_out`` drains the pool
    """
    if amount_out >= reserve_out:
        raise ExcessiveSlippageError(
            f"Requested {amount_out} but the pool only holds {reserve_out}"
        )

    numerator = Decimal(reserve_in) * Decimal(amount_out)
    denominator = Decimal(reserve_out - amount_out) * (Decimal(1) - pool_fee)
    return int((numerator / denominator).to_integral_value(rounding=ROUND_FLOOR)) + 1


def check_pool_liquidity(
    fee_amount: int, reserve: AmmReserve, pool_fee: Decimal, max_pool_share: Decimal
) -> int:
    """Check a fee can be swapped through the pool without excessive slippage.

    Returns:
        Required candidate input

    Raises:
        ExcessiveSlippageError: The swap needs more than ``max_pool_share`` of the candidate reserve
    """
    amount_in = get_amount_in(fee_amount, reserve.candidate_reserve, reserve.native_reserve, pool_fee)
    limit = Decimal(reserve.candidate_reserve) * max_pool_share

    if Decimal(amount_in) > limit:
        raise ExcessiveSlippageError(
            f"Fee swap needs {amount_in} of a {reserve.candidate_reserve} reserve "
            f"(limit {max_pool_share * 100}%)"
        )
    return amount_in


class AmmReserveStrategy(FeeAssetStrategy):
    """Prices candidates from {native, candidate} pool reserves.

    ``rate = native_reserve / candidate_reserve``: native units per candidate unit.
    """

    def __init__(
        self,
        reserve_source: PoolReserveSource,
        chain_slug: str,
        max_pool_share: Optional[Decimal] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.reserve_source = reserve_source
        self.chain_slug = chain_slug
        self.max_pool_share = max_pool_share if max_pool_share is not None else settings.amm_max_pool_share
        self.pool_fee = settings.amm_pool_fee

    @property
    def name(self) -> str:
        return "amm_reserve"

    def select_candidates(self, native: ChainAsset, balances: list[AssetBalance]) -> list[AssetBalance]:
        # pools are keyed by location, so both sides need one
        if not native.has_multilocation:
            logger.debug(f"{native.slug} has no multi-location, only native can pay fees")
            return []

        return [
            balance
            for balance in balances
            if balance.asset.origin_chain == self.chain_slug
            and not balance.asset.is_native
            and balance.asset.has_multilocation
        ]

    async def prepare(self, native: ChainAsset) -> Any:
        return None

    async def evaluate(
        self,
        native: ChainAsset,
        candidate: AssetBalance,
        context: Any,
        fee_amount: Optional[int] = None,
    ) -> FeePayableAsset:
        reserve = await self.reserve_source.get_reserves(native, candidate.asset)

        if reserve is None or reserve.is_empty:
            raise NoLiquidityError(f"No liquidity in {native.symbol}/{candidate.asset.symbol} pool")

        rate = Decimal(reserve.native_reserve) / Decimal(reserve.candidate_reserve)

        if fee_amount is not None:
            amount_in = check_pool_liquidity(fee_amount, reserve, self.pool_fee, self.max_pool_share)
            logger.debug(f"{candidate.slug} covers fee {fee_amount} with {amount_in}")

        return FeePayableAsset(
            slug=candidate.slug,
            free=candidate.free,
            rate=rate,
            has_liquidity=fee_amount is not None,
        )
