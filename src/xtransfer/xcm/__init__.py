"""XCM protocol selection and transfer call construction."""

from xtransfer.xcm.bridge import BridgeFee, encode_send_token
from xtransfer.xcm.builder import (
    DeliveryFeeQuery,
    assert_uniform_version,
    build_fee_estimation_message,
    build_transfer_call,
    plan_xcm_transfer,
)
from xtransfer.xcm.instructions import XcmInstructionKind, is_well_ordered, transfer_message
from xtransfer.xcm.location import (
    adapt_x1_interior,
    get_beneficiary_location,
    get_destination_location,
    get_multi_assets,
)
from xtransfer.xcm.protocol import (
    ProtocolDecision,
    TransferProtocol,
    select_protocol,
)

__all__ = [
    "BridgeFee",
    "encode_send_token",
    "DeliveryFeeQuery",
    "assert_uniform_version",
    "build_fee_estimation_message",
    "build_transfer_call",
    "plan_xcm_transfer",
    "XcmInstructionKind",
    "is_well_ordered",
    "transfer_message",
    "adapt_x1_interior",
    "get_beneficiary_location",
    "get_destination_location",
    "get_multi_assets",
    "ProtocolDecision",
    "TransferProtocol",
    "select_protocol",
]
