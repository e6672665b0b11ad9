"""Typed failures raised by the transfer construction engine.

Every error carries an ``ErrorKind`` so callers can branch on the failure
category without string matching. ``user_message`` holds the text a wallet UI
should display; it may be coarser than the technical message.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure categories."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    NO_LIQUIDITY = "no_liquidity"
    EXCESSIVE_SLIPPAGE = "excessive_slippage"
    UNSUPPORTED_PROTOCOL = "unsupported_protocol"
    ENCODING_MISMATCH = "encoding_mismatch"
    RPC_FAILURE = "rpc_failure"
    AMOUNT_BELOW_DUST = "amount_below_dust"
    INVALID_ADDRESS = "invalid_address"


class XTransferError(Exception):
    """Base class for all engine failures."""

    kind: ErrorKind = ErrorKind.RPC_FAILURE

    def __init__(self, message: str, user_message: Optional[str] = None):
        self.message = message
        self.user_message = user_message or message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class InsufficientFundsError(XTransferError):
    """Total input value is below amount + fee."""

    kind = ErrorKind.INSUFFICIENT_FUNDS


class NoLiquidityError(XTransferError):
    """A pool is missing or has an empty side."""

    kind = ErrorKind.NO_LIQUIDITY


class ExcessiveSlippageError(XTransferError):
    """Swapping the fee through the pool would move it too far."""

    kind = ErrorKind.EXCESSIVE_SLIPPAGE


class UnsupportedProtocolError(XTransferError):
    """No cross-chain pallet applies to the chain pair."""

    kind = ErrorKind.UNSUPPORTED_PROTOCOL


class EncodingMismatchError(XTransferError):
    """Missing metadata for the chosen encoding path, or diverging XCM versions."""

    kind = ErrorKind.ENCODING_MISMATCH


class RpcFailureError(XTransferError):
    """A network-bound sub-step failed."""

    kind = ErrorKind.RPC_FAILURE


class AmountBelowDustError(XTransferError):
    """The output would be below the network dust limit."""

    kind = ErrorKind.AMOUNT_BELOW_DUST


class InvalidAddressError(XTransferError):
    """An address cannot be decoded for the target network."""

    kind = ErrorKind.INVALID_ADDRESS
