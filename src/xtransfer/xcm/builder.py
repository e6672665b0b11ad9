"""XCM transfer call builder.

Turns a ProtocolDecision into a call descriptor, and composes the
instruction sequence used for delivery-fee estimation.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Union

from xtransfer.chains import ChainAsset, ChainInfo, XcmPallet
from xtransfer.config import Settings, get_settings
from xtransfer.contracts import CallDescriptor
from xtransfer.errors import EncodingMismatchError, InvalidAddressError
from xtransfer.intent import TransferIntent, parse_amount
from xtransfer.xcm.bridge import BridgeFee, build_gateway_transaction
from xtransfer.xcm.instructions import (
    UNLIMITED_WEIGHT,
    XcmInstructionKind,
    is_well_ordered,
    transfer_message,
)
from xtransfer.xcm.location import (
    get_beneficiary_location,
    get_bridge_destination_location,
    get_destination_location,
    get_multi_assets,
    version_of,
)
from xtransfer.xcm.protocol import (
    BRIDGE_GATEWAY,
    ProtocolDecision,
    TransferProtocol,
    get_xcm_unstable_warning,
    is_xcm_transfer_unstable,
    select_protocol,
)

logger = logging.getLogger(__name__)

FEE_ASSET_ITEM = 0


def new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass
class DeliveryFeeQuery:
    """Arguments of a delivery-fee query: destination and message."""

    destination: dict
    message: dict
    version: int


def assert_uniform_version(*payloads: dict) -> int:
    """Check all payloads carry the same version tag.

    Raises:
        EncodingMismatchError: Versions diverge
    """
    versions = {version_of(payload) for payload in payloads}
    if len(versions) != 1:
        raise EncodingMismatchError(f"Mixed XCM versions: {sorted(versions)}")
    return versions.pop()


def get_currency_id(asset: ChainAsset) -> object:
    """Opaque on-chain currency identifier for currency-id pallets."""
    if asset.currency_id is not None:
        return asset.currency_id
    if asset.currency_type and asset.asset_id is not None:
        return {asset.currency_type: asset.asset_id}
    if asset.asset_id is not None:
        return asset.asset_id
    return {"Token": asset.symbol}


def _destination(
    origin: ChainInfo, destination: ChainInfo, decision: ProtocolDecision
) -> dict:
    if decision.protocol == TransferProtocol.BRIDGE_TRANSFER:
        return get_bridge_destination_location(origin, destination, decision.xcm_version)
    return get_destination_location(origin, destination, decision.xcm_version)


def build_transfer_call(
    asset: ChainAsset,
    origin: ChainInfo,
    destination: ChainInfo,
    recipient: str,
    amount: Union[str, int],
    decision: ProtocolDecision,
    sender: Optional[str] = None,
    bridge_fee: Optional[BridgeFee] = None,
    id_factory: Callable[[], str] = new_request_id,
    settings: Optional[Settings] = None,
) -> CallDescriptor:
    """Build the transfer call for a protocol decision.

    Args:
        asset: Token on the origin chain
        origin: Origin chain
        destination: Destination chain
        recipient: Recipient in the destination's account format
        amount: Amount in the smallest unit
        decision: Output of select_protocol
        sender: Sender address (required for EVM gateway calls)
        bridge_fee: Bridge fee quote for EVM gateway calls
        id_factory: Produces the request id of the descriptor
        settings: Optional settings

    Returns:
        CallDescriptor

    Raises:
        EncodingMismatchError: Missing metadata or diverging versions
    """
    settings = settings or get_settings()
    value = parse_amount(amount)
    version = decision.xcm_version
    warnings: list[str] = []

    if is_xcm_transfer_unstable(origin, destination):
        warnings.append(get_xcm_unstable_warning(origin, destination))

    if decision.pallet == BRIDGE_GATEWAY:
        if not sender:
            raise InvalidAddressError("Sender is required for bridge gateway transfers")
        args, evm_transaction = build_gateway_transaction(
            asset, origin, destination, sender, recipient, value, settings, bridge_fee
        )
        return CallDescriptor(
            request_id=id_factory(),
            chain=origin.slug,
            kind="evm",
            pallet=decision.pallet,
            method=decision.method,
            args=args,
            protocol=decision.protocol.value,
            xcm_version=version,
            evm_transaction=evm_transaction,
            warnings=warnings,
        )

    if decision.pallet == XcmPallet.XTOKENS.value:
        # beneficiary travels inside the destination location
        dest = get_destination_location(origin, destination, version, recipient)

        if decision.uses_currency_id:
            args = [get_currency_id(asset), str(value), dest, UNLIMITED_WEIGHT]
        else:
            assets = get_multi_assets(asset, origin, value, version)
            assert_uniform_version(dest, assets)
            args = [assets, FEE_ASSET_ITEM, dest, UNLIMITED_WEIGHT]
    else:
        dest = _destination(origin, destination, decision)
        beneficiary = get_beneficiary_location(destination, recipient, version)
        assets = get_multi_assets(asset, origin, value, version)
        assert_uniform_version(dest, beneficiary, assets)
        args = [dest, beneficiary, assets, FEE_ASSET_ITEM, UNLIMITED_WEIGHT]

    logger.info(
        f"Built {decision.pallet}.{decision.method} for {value} {asset.symbol} "
        f"{origin.slug} -> {destination.slug} (V{version})"
    )

    return CallDescriptor(
        request_id=id_factory(),
        chain=origin.slug,
        pallet=decision.pallet,
        method=decision.method,
        args=args,
        protocol=decision.protocol.value,
        xcm_version=version,
        warnings=warnings,
    )


def _loading_kind(decision: ProtocolDecision) -> XcmInstructionKind:
    if decision.protocol == TransferProtocol.TELEPORT:
        return XcmInstructionKind.RECEIVE_TELEPORTED_ASSET
    if decision.protocol == TransferProtocol.RESERVE_TRANSFER and decision.pallet != XcmPallet.XTOKENS.value:
        return XcmInstructionKind.RESERVE_ASSET_DEPOSITED
    return XcmInstructionKind.WITHDRAW_ASSET


def build_fee_estimation_message(
    asset: ChainAsset,
    origin: ChainInfo,
    destination: ChainInfo,
    recipient: str,
    amount: Union[str, int],
    decision: ProtocolDecision,
) -> DeliveryFeeQuery:
    """Compose the delivery-fee query for a transfer.

    The message is only for fee estimation and is never broadcast.

    Raises:
        EncodingMismatchError: The asset has no multi-location
    """
    value = parse_amount(amount)
    version = decision.xcm_version
    dest = _destination(origin, destination, decision)
    message = transfer_message(
        _loading_kind(decision), asset, origin, destination, recipient, value, version
    )
    assert_uniform_version(dest, message)
    if not is_well_ordered(message[f"V{version}"]):
        raise EncodingMismatchError(
            f"Fee estimation message for {asset.slug} is out of order"
        )
    return DeliveryFeeQuery(destination=dest, message=message, version=version)


def plan_xcm_transfer(
    intent: TransferIntent,
    bridge_fee: Optional[BridgeFee] = None,
    id_factory: Callable[[], str] = new_request_id,
    settings: Optional[Settings] = None,
) -> CallDescriptor:
    """Select the protocol for an intent and build its call."""
    decision = select_protocol(
        intent.asset, intent.origin_chain, intent.destination_chain, settings=settings
    )
    logger.info(
        f"Transfer {intent.asset.slug} {intent.origin_chain.slug} -> "
        f"{intent.destination_chain.slug}: {decision.protocol.value}"
    )
    return build_transfer_call(
        intent.asset,
        intent.origin_chain,
        intent.destination_chain,
        intent.recipient,
        intent.amount,
        decision,
        sender=intent.sender,
        bridge_fee=bridge_fee,
        id_factory=id_factory,
        settings=settings,
    )
