"""Bridge gateway call encoding for EVM origins.

Encodes ``sendToken(address,uint32,(uint8,bytes),uint128,uint128)`` on the
gateway contract. NO signing or broadcasting happens here.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from xtransfer.chains import AccountFormat, ChainAsset, ChainInfo
from xtransfer.config import Settings
from xtransfer.contracts import EvmTransaction
from xtransfer.errors import EncodingMismatchError
from xtransfer.xcm.location import decode_account_id, normalize_evm_address

logger = logging.getLogger(__name__)

SEND_TOKEN_SIGNATURE = "sendToken(address,uint32,(uint8,bytes),uint128,uint128)"
SEND_TOKEN_SELECTOR = "0x" + function_signature_to_4byte_selector(SEND_TOKEN_SIGNATURE).hex()

# MultiAddress kinds understood by the gateway
RECIPIENT_KIND_ADDRESS32 = 1
RECIPIENT_KIND_ADDRESS20 = 2

UINT128_MAX = 2**128 - 1


@dataclass
class BridgeFee:
    """Fees quoted by the bridge for one transfer."""

    total_fee_wei: int = 0  # paid as msg.value
    destination_fee: int = 0  # execution + delivery on the destination

    @property
    def is_quoted(self) -> bool:
        return self.total_fee_wei > 0


def _word(value: int) -> str:
    return format(value, "x").zfill(64)


def _pad_bytes(data: bytes) -> str:
    hex_data = data.hex()
    padding = (-len(hex_data)) % 64
    return hex_data + "0" * padding


def bridge_recipient(destination: ChainInfo, recipient: str) -> tuple[int, bytes]:
    """Encode the recipient as a gateway MultiAddress (kind, data)."""
    if destination.account_format == AccountFormat.EVM:
        return RECIPIENT_KIND_ADDRESS20, bytes.fromhex(normalize_evm_address(recipient)[2:])
    return RECIPIENT_KIND_ADDRESS32, bytes.fromhex(decode_account_id(recipient)[2:])


def encode_send_token(
    token: str,
    destination_para_id: int,
    recipient_kind: int,
    recipient_data: bytes,
    destination_fee: int,
    amount: int,
) -> str:
    """ABI-encode a sendToken call."""
    if not 0 <= amount <= UINT128_MAX or not 0 <= destination_fee <= UINT128_MAX:
        raise EncodingMismatchError("Amount does not fit in uint128")

    token_word = normalize_evm_address(token)[2:].zfill(64)
    tuple_offset = 5 * 32
    bytes_offset = 2 * 32

    head = (
        token_word
        + _word(destination_para_id)
        + _word(tuple_offset)
        + _word(destination_fee)
        + _word(amount)
    )
    tail = (
        _word(recipient_kind)
        + _word(bytes_offset)
        + _word(len(recipient_data))
        + _pad_bytes(recipient_data)
    )
    return SEND_TOKEN_SELECTOR + head + tail


def build_gateway_transaction(
    asset: ChainAsset,
    origin: ChainInfo,
    destination: ChainInfo,
    sender: str,
    recipient: str,
    amount: int,
    settings: Settings,
    fee: Optional[BridgeFee] = None,
) -> tuple[list, EvmTransaction]:
    """Build the gateway call arguments and the unsigned EVM transaction.

    Returns:
        Tuple of (call_args, evm_transaction)
    """
    if not asset.contract_address:
        raise EncodingMismatchError(f"{asset.slug} has no ERC-20 contract address")
    if destination.para_id is None:
        raise EncodingMismatchError(f"{destination.slug} has no parachain id")
    if origin.evm_chain_id is None:
        raise EncodingMismatchError(f"{origin.slug} has no EVM chain id")

    fee = fee or BridgeFee()
    if not fee.is_quoted:
        logger.warning(f"No bridge fee quote for {asset.slug}, encoding zero fees")

    kind, data = bridge_recipient(destination, recipient)
    call_data = encode_send_token(
        asset.contract_address,
        destination.para_id,
        kind,
        data,
        fee.destination_fee,
        amount,
    )
    gateway = settings.get_bridge_gateway(origin.is_testnet)

    transaction = EvmTransaction(
        chain_id=origin.evm_chain_id,
        from_address=to_checksum_address(normalize_evm_address(sender)),
        to=to_checksum_address(gateway),
        value=str(fee.total_fee_wei),
        data=call_data,
        gas_limit=settings.bridge_default_gas_limit,
    )
    args = [
        to_checksum_address(asset.contract_address),
        destination.para_id,
        {"kind": kind, "data": "0x" + data.hex()},
        str(fee.destination_fee),
        str(amount),
    ]
    return args, transaction
