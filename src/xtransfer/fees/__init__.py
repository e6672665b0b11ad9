"""Resolution of assets that can pay network fees."""

from xtransfer.fees.allowlist import AllowListStrategy
from xtransfer.fees.amm import AmmReserveStrategy, check_pool_liquidity, get_amount_in
from xtransfer.fees.base import (
    ALL_CANDIDATES,
    AcceptedCurrencySource,
    AmmReserve,
    AssetBalance,
    FeeAssetStrategy,
    FeePayableAsset,
    PoolReserveSource,
    ResolutionReport,
)
from xtransfer.fees.batch import wrap_with_fee_currency
from xtransfer.fees.resolver import resolve_payable_assets

__all__ = [
    "AllowListStrategy",
    "AmmReserveStrategy",
    "check_pool_liquidity",
    "get_amount_in",
    "ALL_CANDIDATES",
    "AcceptedCurrencySource",
    "AmmReserve",
    "AssetBalance",
    "FeeAssetStrategy",
    "FeePayableAsset",
    "PoolReserveSource",
    "ResolutionReport",
    "wrap_with_fee_currency",
    "resolve_payable_assets",
]
