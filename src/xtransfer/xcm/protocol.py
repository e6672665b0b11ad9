"""Cross-chain transfer protocol selection.

Decides which protocol (teleport, reserve transfer, bridge) and which pallet
entry point applies to an (asset, origin, destination) triple.

Precedence is fixed and evaluated top to bottom:
1. bridged asset leaving its consensus system -> BRIDGE_TRANSFER (pinned version)
2. trusted teleport pair                      -> TELEPORT
3. anything else                              -> RESERVE_TRANSFER
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple, Optional

from xtransfer.chains import (
    ChainAsset,
    ChainInfo,
    XcmPallet,
    is_teleport_pair,
    is_within_same_consensus,
)
from xtransfer.config import Settings, get_settings
from xtransfer.errors import EncodingMismatchError, UnsupportedProtocolError

logger = logging.getLogger(__name__)

BRIDGE_GATEWAY = "snowbridgeGateway"


class TransferProtocol(str, Enum):
    """Cross-chain transfer protocols."""

    TELEPORT = "TELEPORT"
    RESERVE_TRANSFER = "RESERVE_TRANSFER"
    BRIDGE_TRANSFER = "BRIDGE_TRANSFER"


@dataclass(frozen=True)
class ProtocolDecision:
    """The single protocol decision for a transfer."""

    protocol: TransferProtocol
    pallet: str
    method: str
    xcm_version: int

    @property
    def uses_currency_id(self) -> bool:
        """True when the asset is addressed by currency id rather than location."""
        return self.pallet == XcmPallet.XTOKENS.value and self.method == "transfer"


class ProtocolFacts(NamedTuple):
    """The three facts protocol precedence depends on."""

    is_bridged: bool
    is_teleport_eligible: bool
    same_consensus: bool


_PRECEDENCE: tuple[tuple[Callable[[ProtocolFacts], bool], TransferProtocol], ...] = (
    (lambda f: f.is_bridged and not f.same_consensus, TransferProtocol.BRIDGE_TRANSFER),
    (lambda f: f.is_teleport_eligible, TransferProtocol.TELEPORT),
    (lambda f: True, TransferProtocol.RESERVE_TRANSFER),
)


def collect_facts(asset: ChainAsset, origin: ChainInfo, destination: ChainInfo) -> ProtocolFacts:
    """Gather the facts protocol precedence is evaluated on."""
    return ProtocolFacts(
        is_bridged=asset.is_bridged,
        is_teleport_eligible=is_teleport_pair(origin, destination, asset.slug),
        same_consensus=is_within_same_consensus(origin, destination),
    )


def match_protocol(facts: ProtocolFacts) -> TransferProtocol:
    """Return the first protocol whose rule matches."""
    for rule, protocol in _PRECEDENCE:
        if rule(facts):
            return protocol
    raise AssertionError("protocol precedence has a catch-all rule")


def select_protocol(
    asset: ChainAsset,
    origin: ChainInfo,
    destination: ChainInfo,
    settings: Optional[Settings] = None,
) -> ProtocolDecision:
    """Select the transfer protocol and pallet entry point.

    Args:
        asset: Token being transferred (on the origin chain)
        origin: Origin chain
        destination: Destination chain
        settings: Optional settings (XCM version pins)

    Returns:
        ProtocolDecision

    Raises:
        UnsupportedProtocolError: No cross-chain pallet applies to the pair
        EncodingMismatchError: The asset lacks metadata the pallet needs
    """
    settings = settings or get_settings()
    facts = collect_facts(asset, origin, destination)
    protocol = match_protocol(facts)

    if protocol == TransferProtocol.BRIDGE_TRANSFER:
        pallet, method = _bridge_entry_point(origin, destination)
        version = settings.bridge_xcm_version
    else:
        if not destination.supports_xcm:
            raise UnsupportedProtocolError(
                f"Destination {destination.slug} does not support XCM"
            )
        pallet, method = _xcm_entry_point(asset, origin, protocol)
        version = settings.stable_xcm_version

    decision = ProtocolDecision(
        protocol=protocol,
        pallet=pallet,
        method=method,
        xcm_version=version,
    )
    logger.debug(
        f"Protocol for {asset.slug} {origin.slug} -> {destination.slug}: "
        f"{protocol.value} via {pallet}.{method} (V{version}) facts={facts}"
    )
    return decision


def _bridge_entry_point(origin: ChainInfo, destination: ChainInfo) -> tuple[str, str]:
    if not (destination.is_pure_evm or destination.is_substrate):
        raise UnsupportedProtocolError(f"No bridge route to {destination.slug}")

    if origin.is_pure_evm:
        return BRIDGE_GATEWAY, "sendToken"

    if origin.has_pallet(XcmPallet.POLKADOT_XCM):
        return XcmPallet.POLKADOT_XCM.value, "transferAssets"

    raise UnsupportedProtocolError(f"Origin {origin.slug} exposes no bridge entry point")


def _xcm_entry_point(
    asset: ChainAsset, origin: ChainInfo, protocol: TransferProtocol
) -> tuple[str, str]:
    limited = (
        "limitedTeleportAssets"
        if protocol == TransferProtocol.TELEPORT
        else "limitedReserveTransferAssets"
    )

    # relay chains only expose the legacy pallet
    if origin.is_relay:
        if origin.has_pallet(XcmPallet.XCM_PALLET):
            return XcmPallet.XCM_PALLET.value, limited
        raise UnsupportedProtocolError(f"Relay chain {origin.slug} exposes no xcmPallet")

    if not origin.is_parachain:
        raise UnsupportedProtocolError(f"Origin {origin.slug} is not a Substrate chain")

    if asset.has_multilocation:
        if origin.has_pallet(XcmPallet.POLKADOT_XCM):
            return XcmPallet.POLKADOT_XCM.value, limited
        if origin.has_pallet(XcmPallet.XTOKENS) and protocol == TransferProtocol.RESERVE_TRANSFER:
            return XcmPallet.XTOKENS.value, "transferMultiassets"
    elif origin.has_pallet(XcmPallet.XTOKENS):
        if protocol == TransferProtocol.TELEPORT:
            raise EncodingMismatchError(
                f"{asset.slug} has no multi-location; teleport needs one"
            )
        return XcmPallet.XTOKENS.value, "transfer"
    elif origin.has_pallet(XcmPallet.POLKADOT_XCM):
        raise EncodingMismatchError(
            f"{asset.slug} has no multi-location and {origin.slug} has no currency-id pallet"
        )

    raise UnsupportedProtocolError(
        f"No {protocol.value} entry point on {origin.slug} for {asset.slug}"
    )


# ======================
# Stability warnings
# ======================

_BRIDGE_WARNINGS = {
    "statemint": (
        "Cross-chain transfer of this token is not recommended as it is in beta "
        "and incurs a transaction fee of 2 DOT. Continue at your own risk"
    ),
    "statemine": (
        "Cross-chain transfer of this token is not recommended as it is in beta "
        "and incurs a transaction fee of 0.4 KSM. Continue at your own risk"
    ),
}

_EVM_BRIDGE_WARNING = (
    "Cross-chain transfer of this token is not recommended as it is in beta, "
    "incurs a high fee and takes up to 1 hour to complete. Continue at your own risk"
)

_DEFAULT_BRIDGE_WARNING = (
    "Cross-chain transfer of this token is not recommended as it is in beta "
    "and incurs a large transaction fee. Continue at your own risk"
)


def is_xcm_transfer_unstable(origin: ChainInfo, destination: ChainInfo) -> bool:
    """Transfers leaving a consensus system go through beta bridges."""
    return not is_within_same_consensus(origin, destination)


def get_xcm_unstable_warning(origin: ChainInfo, destination: ChainInfo) -> str:
    """Human-readable warning for an unstable cross-chain route."""
    if origin.is_pure_evm or destination.is_pure_evm:
        return _EVM_BRIDGE_WARNING
    return _BRIDGE_WARNINGS.get(origin.slug, _DEFAULT_BRIDGE_WARNING)
