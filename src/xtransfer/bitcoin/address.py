"""Bitcoin address typing and scriptPubKey derivation.

Supports legacy (base58check) and segwit (bech32 / bech32m) addresses on
mainnet, testnet and regtest.
"""

from dataclasses import dataclass
from enum import Enum

import base58
from bip_utils import SegwitBech32Decoder
from bitcoin.core import CScript
from bitcoin.core.script import (
    OP_0,
    OP_1,
    OP_CHECKSIG,
    OP_DUP,
    OP_EQUAL,
    OP_EQUALVERIFY,
    OP_HASH160,
)

from xtransfer.errors import InvalidAddressError

SEGWIT_HRPS = {
    "bc": "mainnet",
    "tb": "testnet",
    "bcrt": "regtest",
}

# base58 version byte -> (network, type)
LEGACY_VERSIONS = {
    0x00: ("mainnet", "p2pkh"),
    0x05: ("mainnet", "p2sh"),
    0x6F: ("testnet", "p2pkh"),
    0xC4: ("testnet", "p2sh"),
}


class BitcoinAddressType(str, Enum):
    """Standard output types."""

    P2PKH = "p2pkh"
    P2SH = "p2sh"
    P2WPKH = "p2wpkh"
    P2WSH = "p2wsh"
    P2TR = "p2tr"

    @property
    def is_witness(self) -> bool:
        return self not in (BitcoinAddressType.P2PKH, BitcoinAddressType.P2SH)


@dataclass(frozen=True)
class BitcoinAddressInfo:
    """Decoded address."""

    address: str
    type: BitcoinAddressType
    network: str
    program: bytes  # hash160, script hash or witness program

    @property
    def script_pubkey(self) -> bytes:
        return script_pubkey_for(self.type, self.program)


def script_pubkey_for(address_type: BitcoinAddressType, program: bytes) -> CScript:
    """Build the output script locking to a program."""
    if address_type == BitcoinAddressType.P2PKH:
        return CScript([OP_DUP, OP_HASH160, program, OP_EQUALVERIFY, OP_CHECKSIG])
    if address_type == BitcoinAddressType.P2SH:
        return CScript([OP_HASH160, program, OP_EQUAL])
    if address_type == BitcoinAddressType.P2TR:
        return CScript([OP_1, program])
    return CScript([OP_0, program])


def _decode_segwit(address: str) -> BitcoinAddressInfo:
    hrp = address.rsplit("1", 1)[0].lower()
    network = SEGWIT_HRPS.get(hrp)
    if network is None:
        raise InvalidAddressError(f"Unknown bech32 prefix in {address}")

    try:
        witness_version, program = SegwitBech32Decoder.Decode(hrp, address)
    except Exception as e:
        raise InvalidAddressError(f"Invalid bech32 address {address}: {e}") from e

    if witness_version == 0 and len(program) == 20:
        address_type = BitcoinAddressType.P2WPKH
    elif witness_version == 0 and len(program) == 32:
        address_type = BitcoinAddressType.P2WSH
    elif witness_version == 1 and len(program) == 32:
        address_type = BitcoinAddressType.P2TR
    else:
        raise InvalidAddressError(
            f"Unsupported witness program v{witness_version} ({len(program)} bytes): {address}"
        )

    return BitcoinAddressInfo(address=address, type=address_type, network=network, program=bytes(program))


def _decode_legacy(address: str) -> BitcoinAddressInfo:
    try:
        payload = base58.b58decode_check(address)
    except ValueError as e:
        raise InvalidAddressError(f"Invalid base58 address {address}: {e}") from e

    if len(payload) != 21 or payload[0] not in LEGACY_VERSIONS:
        raise InvalidAddressError(f"Unsupported legacy address: {address}")

    network, type_name = LEGACY_VERSIONS[payload[0]]
    return BitcoinAddressInfo(
        address=address,
        type=BitcoinAddressType(type_name),
        network=network,
        program=payload[1:],
    )


def get_address_info(address: str) -> BitcoinAddressInfo:
    """Decode and classify a Bitcoin address.

    Raises:
        InvalidAddressError: The address cannot be decoded
    """
    if not address:
        raise InvalidAddressError("Empty Bitcoin address")

    if address.lower().startswith(tuple(f"{hrp}1" for hrp in SEGWIT_HRPS)):
        return _decode_segwit(address)
    return _decode_legacy(address)


def is_valid_address(address: str) -> bool:
    try:
        get_address_info(address)
    except InvalidAddressError:
        return False
    return True


def get_address_type(address: str, fallback: BitcoinAddressType = BitcoinAddressType.P2WPKH) -> BitcoinAddressType:
    """Address type, or ``fallback`` for an undecodable address."""
    try:
        return get_address_info(address).type
    except InvalidAddressError:
        return fallback
