"""XCM instruction builders.

Only used to compose the message passed to delivery-fee queries. The
instruction order of a transfer message is fixed:

    [<Withdraw|ReserveAssetDeposited|ReceiveTeleported>Asset, ClearOrigin,
     BuyExecution, DepositAsset]

Delivery fees are computed over the encoded message, so any permutation
changes the quoted fee.
"""

from enum import Enum

from xtransfer.chains import ChainAsset, ChainInfo
from xtransfer.xcm.location import (
    account_junction,
    get_asset_identifier,
    make_interior,
    versioned,
)

UNLIMITED_WEIGHT = "Unlimited"


class XcmInstructionKind(str, Enum):
    """Instructions emitted by this module."""

    WITHDRAW_ASSET = "WithdrawAsset"
    RESERVE_ASSET_DEPOSITED = "ReserveAssetDeposited"
    RECEIVE_TELEPORTED_ASSET = "ReceiveTeleportedAsset"
    CLEAR_ORIGIN = "ClearOrigin"
    BUY_EXECUTION = "BuyExecution"
    DEPOSIT_ASSET = "DepositAsset"


ASSET_LOADING_KINDS = frozenset({
    XcmInstructionKind.WITHDRAW_ASSET,
    XcmInstructionKind.RESERVE_ASSET_DEPOSITED,
    XcmInstructionKind.RECEIVE_TELEPORTED_ASSET,
})

TRANSFER_MESSAGE_SHAPE = (
    ASSET_LOADING_KINDS,
    frozenset({XcmInstructionKind.CLEAR_ORIGIN}),
    frozenset({XcmInstructionKind.BUY_EXECUTION}),
    frozenset({XcmInstructionKind.DEPOSIT_ASSET}),
)


def _fungible(asset: ChainAsset, origin: ChainInfo, amount: int, version: int) -> dict:
    return {
        "id": get_asset_identifier(asset, origin, version),
        "fun": {"Fungible": str(amount)},
    }


def asset_loading_instruction(
    kind: XcmInstructionKind, asset: ChainAsset, origin: ChainInfo, amount: int, version: int
) -> dict:
    """WithdrawAsset / ReserveAssetDeposited / ReceiveTeleportedAsset."""
    if kind not in ASSET_LOADING_KINDS:
        raise ValueError(f"{kind.value} does not load assets into holding")
    return {kind.value: [_fungible(asset, origin, amount, version)]}


def clear_origin() -> dict:
    return {XcmInstructionKind.CLEAR_ORIGIN.value: None}


def buy_execution(asset: ChainAsset, origin: ChainInfo, amount: int, version: int) -> dict:
    return {
        XcmInstructionKind.BUY_EXECUTION.value: {
            "fees": _fungible(asset, origin, amount, version),
            "weightLimit": UNLIMITED_WEIGHT,
        }
    }


def deposit_asset(destination: ChainInfo, recipient: str, version: int) -> dict:
    return {
        XcmInstructionKind.DEPOSIT_ASSET.value: {
            "assets": {"Wild": {"AllCounted": 1}},
            "beneficiary": {
                "parents": 0,
                "interior": make_interior([account_junction(destination, recipient)], version),
            },
        }
    }


def instruction_kind(instruction: dict) -> XcmInstructionKind:
    """Tag of a single instruction dict."""
    (name,) = instruction.keys()
    return XcmInstructionKind(name)


def transfer_message(
    loading_kind: XcmInstructionKind,
    asset: ChainAsset,
    origin: ChainInfo,
    destination: ChainInfo,
    recipient: str,
    amount: int,
    version: int,
) -> dict:
    """Versioned four-instruction transfer message."""
    return versioned(
        [
            asset_loading_instruction(loading_kind, asset, origin, amount, version),
            clear_origin(),
            buy_execution(asset, origin, amount, version),
            deposit_asset(destination, recipient, version),
        ],
        version,
    )


def is_well_ordered(instructions: list[dict]) -> bool:
    """Check an instruction list against the transfer message shape."""
    if len(instructions) != len(TRANSFER_MESSAGE_SHAPE):
        return False
    return all(
        instruction_kind(instruction) in allowed
        for instruction, allowed in zip(instructions, TRANSFER_MESSAGE_SHAPE)
    )
