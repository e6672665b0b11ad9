"""Transfer intents.

A TransferIntent is created per request and never persisted.
"""

from dataclasses import dataclass
from typing import Union

from xtransfer.chains import ChainAsset, ChainInfo


def parse_amount(amount: Union[str, int]) -> int:
    """Parse an amount in the smallest unit.

    Raises:
        ValueError: Not a non-negative integer
    """
    if isinstance(amount, bool):
        raise ValueError(f"Invalid amount: {amount!r}")
    if isinstance(amount, int):
        value = amount
    else:
        text = str(amount).strip()
        if not text.isdigit():
            raise ValueError(f"Amount must be a non-negative integer string, got {amount!r}")
        value = int(text)

    if value < 0:
        raise ValueError(f"Amount must be non-negative, got {value}")
    return value


@dataclass(frozen=True)
class TransferIntent:
    """Request to move an asset from one chain to another."""

    asset: ChainAsset
    origin_chain: ChainInfo
    destination_chain: ChainInfo
    sender: str
    recipient: str
    amount: str  # smallest unit, decimal string

    def __post_init__(self):
        parse_amount(self.amount)
        if self.asset.origin_chain != self.origin_chain.slug:
            raise ValueError(
                f"Asset {self.asset.slug} lives on {self.asset.origin_chain}, "
                f"not on {self.origin_chain.slug}"
            )

    @property
    def value(self) -> int:
        return parse_amount(self.amount)

    @property
    def is_cross_chain(self) -> bool:
        return self.origin_chain.slug != self.destination_chain.slug
