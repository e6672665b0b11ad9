"""Fee-payable-asset resolution: shared types and strategy interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Protocol

from xtransfer.chains import ChainAsset
from xtransfer.errors import XTransferError

# ResolutionReport.rejected key for a failure that drops every candidate
ALL_CANDIDATES = "*"


@dataclass
class AmmReserve:
    """Reserves of one {native, candidate} liquidity pool."""

    native_reserve: int
    candidate_reserve: int

    @property
    def is_empty(self) -> bool:
        return self.native_reserve <= 0 or self.candidate_reserve <= 0


@dataclass
class AssetBalance:
    """Free balance of an asset held by the fee payer."""

    asset: ChainAsset
    free: str  # smallest unit

    @property
    def slug(self) -> str:
        return self.asset.slug


@dataclass
class FeePayableAsset:
    """An asset that can pay the network fee.

    ``rate`` converts between the asset and the native token, see the
    strategy that produced it. ``has_liquidity`` is True when the asset was
    checked against a concrete fee amount (always True for the native asset).
    """

    slug: str
    free: str
    rate: Decimal
    has_liquidity: bool = True


@dataclass
class ResolutionReport:
    """Outcome of a resolution: accepted assets (native first) and rejections."""

    assets: list[FeePayableAsset] = field(default_factory=list)
    rejected: dict[str, XTransferError] = field(default_factory=dict)

    @property
    def slugs(self) -> list[str]:
        return [asset.slug for asset in self.assets]

    @property
    def native(self) -> FeePayableAsset:
        return self.assets[0]

    def get(self, slug: str) -> Optional[FeePayableAsset]:
        for asset in self.assets:
            if asset.slug == slug:
                return asset
        return None


class PoolReserveSource(Protocol):
    """Reads {native, candidate} pool reserves from an asset-conversion pallet."""

    async def get_reserves(self, native: ChainAsset, candidate: ChainAsset) -> Optional[AmmReserve]:
        ...


class AcceptedCurrencySource(Protocol):
    """Reads the accepted fee currencies registry of a chain."""

    async def get_accepted_currencies(self, chain_slug: str) -> list[str]:
        ...


class FeeAssetStrategy(ABC):
    """Abstract base class for fee-asset strategies.

    A resolution runs ``prepare`` once (a mandatory step), then
    ``evaluate`` concurrently for every candidate (optional steps whose
    failures only drop that candidate).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name identifier."""
        pass

    @abstractmethod
    def select_candidates(self, native: ChainAsset, balances: list[AssetBalance]) -> list[AssetBalance]:
        """Filter balances down to the candidates this strategy can price."""
        pass

    @abstractmethod
    async def prepare(self, native: ChainAsset) -> Any:
        """Fetch data shared by every candidate.

        Raises:
            XTransferError: The strategy cannot price any candidate
        """
        pass

    @abstractmethod
    async def evaluate(
        self,
        native: ChainAsset,
        candidate: AssetBalance,
        context: Any,
        fee_amount: Optional[int] = None,
    ) -> FeePayableAsset:
        """Price one candidate.

        Raises:
            XTransferError: The candidate cannot pay the fee
        """
        pass

    def supplementary_assets(
        self, native: ChainAsset, listed: list[str], context: Any
    ) -> list[FeePayableAsset]:
        """Assets to list even without a balance."""
        return []
