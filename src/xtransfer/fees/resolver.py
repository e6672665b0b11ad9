"""Fee-payable-asset resolver.

Runs a strategy over the fee payer's balances. Candidate lookups fan out
concurrently and a failing lookup only drops that candidate.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Optional

from xtransfer.chains import ChainAsset
from xtransfer.errors import RpcFailureError, XTransferError
from xtransfer.fees.base import (
    ALL_CANDIDATES,
    AssetBalance,
    FeeAssetStrategy,
    FeePayableAsset,
    ResolutionReport,
)

logger = logging.getLogger(__name__)


async def resolve_payable_assets(
    native_asset: ChainAsset,
    native_balance: str,
    candidate_balances: list[AssetBalance],
    strategy: FeeAssetStrategy,
    fee_amount: Optional[int] = None,
) -> ResolutionReport:
    """Resolve which assets can pay the network fee.

    Args:
        native_asset: Native token of the chain
        native_balance: Free native balance (smallest unit)
        candidate_balances: Non-zero balances of other assets
        strategy: AMM-reserve or allow-listed-currency strategy
        fee_amount: Fee in native units to check liquidity against

    Returns:
        ResolutionReport with the native asset first
    """
    report = ResolutionReport(
        assets=[FeePayableAsset(slug=native_asset.slug, free=native_balance, rate=Decimal(1))]
    )
    candidates = strategy.select_candidates(native_asset, candidate_balances)

    try:
        context = await strategy.prepare(native_asset)
    except XTransferError as e:
        logger.warning(f"[{strategy.name}] {native_asset.origin_chain}: {e.message}, only native can pay")
        report.rejected[ALL_CANDIDATES] = e
        return report

    results = await asyncio.gather(
        *(strategy.evaluate(native_asset, candidate, context, fee_amount) for candidate in candidates),
        return_exceptions=True,
    )

    for candidate, result in zip(candidates, results):
        if isinstance(result, FeePayableAsset):
            report.assets.append(result)
        elif isinstance(result, XTransferError):
            logger.warning(f"[{strategy.name}] Dropped {candidate.slug}: {result.message}")
            report.rejected[candidate.slug] = result
        elif isinstance(result, Exception):
            logger.warning(f"[{strategy.name}] Lookup for {candidate.slug} failed: {type(result).__name__}: {result}")
            report.rejected[candidate.slug] = RpcFailureError(str(result))
        else:
            # CancelledError and friends
            raise result

    report.assets.extend(strategy.supplementary_assets(native_asset, report.slugs, context))

    logger.info(
        f"[{strategy.name}] {len(report.assets)} fee-payable asset(s) on "
        f"{native_asset.origin_chain}, {len(report.rejected)} rejected"
    )
    return report
