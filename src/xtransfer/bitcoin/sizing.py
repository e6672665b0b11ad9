"""Transaction virtual size and dust limits."""

import math
from collections import Counter
from typing import Iterable

from xtransfer.bitcoin.address import BitcoinAddressType, get_address_info, get_address_type
from xtransfer.errors import InvalidAddressError

# version (4) + locktime (4); the two varint counts are added separately
TX_BASE_VBYTES = 8
SEGWIT_MARKER_VBYTES = 0.5

INPUT_VBYTES = {
    BitcoinAddressType.P2PKH: 148,
    BitcoinAddressType.P2SH: 91,  # p2sh-p2wpkh
    BitcoinAddressType.P2WPKH: 68,
    BitcoinAddressType.P2WSH: 68,
    BitcoinAddressType.P2TR: 57.5,
}

OUTPUT_VBYTES = {
    BitcoinAddressType.P2PKH: 34,
    BitcoinAddressType.P2SH: 32,
    BitcoinAddressType.P2WPKH: 31,
    BitcoinAddressType.P2WSH: 43,
    BitcoinAddressType.P2TR: 43,
}

DUST_LIMITS = {
    BitcoinAddressType.P2PKH: 546,
    BitcoinAddressType.P2SH: 540,
    BitcoinAddressType.P2WPKH: 294,
    BitcoinAddressType.P2WSH: 330,
    BitcoinAddressType.P2TR: 330,
}

DEFAULT_DUST_LIMIT = 546

# input types spent with witness data
_WITNESS_INPUTS = frozenset({
    BitcoinAddressType.P2SH,
    BitcoinAddressType.P2WPKH,
    BitcoinAddressType.P2WSH,
    BitcoinAddressType.P2TR,
})


def varint_size(count: int) -> int:
    if count < 0xFD:
        return 1
    if count <= 0xFFFF:
        return 3
    if count <= 0xFFFFFFFF:
        return 5
    return 9


def estimate_tx_vbytes(
    input_type: BitcoinAddressType,
    input_count: int,
    output_types: Iterable[BitcoinAddressType],
) -> float:
    """Estimate the virtual size of a transaction."""
    outputs = Counter(output_types)
    output_count = sum(outputs.values())

    vbytes = TX_BASE_VBYTES + varint_size(input_count) + varint_size(output_count)
    if input_type in _WITNESS_INPUTS:
        vbytes += SEGWIT_MARKER_VBYTES

    vbytes += INPUT_VBYTES[input_type] * input_count
    for output_type, count in outputs.items():
        vbytes += OUTPUT_VBYTES[output_type] * count

    return vbytes


def get_size_info(sender: str, input_count: int, recipients: list[str]) -> float:
    """Virtual size of spending ``input_count`` sender UTXOs to ``recipients``.

    Undecodable addresses are sized as p2wpkh.
    """
    return estimate_tx_vbytes(
        get_address_type(sender),
        input_count,
        [get_address_type(recipient) for recipient in recipients],
    )


def fee_for(vbytes: float, fee_rate: float) -> int:
    """Absolute fee in satoshis, rounded up."""
    return math.ceil(vbytes * fee_rate)


def dust_limit(address: str) -> int:
    """Smallest economical output value for an address."""
    try:
        return DUST_LIMITS.get(get_address_info(address).type, DEFAULT_DUST_LIMIT)
    except InvalidAddressError:
        return DEFAULT_DUST_LIMIT
