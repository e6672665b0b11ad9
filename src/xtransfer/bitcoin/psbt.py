"""PSBT (BIP-174 v0) assembly.

Builds the unsigned transaction for a coin selection and attaches the
per-input data a signer needs:
- p2pkh / p2sh inputs: the full previous transaction (NON_WITNESS_UTXO)
- p2wpkh / p2tr inputs: script + value of the spent output (WITNESS_UTXO)
- p2tr inputs: the x-only internal key when supplied (TAP_INTERNAL_KEY)

NO signing happens here.
"""

import base64
import logging
from typing import Optional, Union

from bitcoin.core import (
    CMutableTransaction,
    CMutableTxIn,
    CMutableTxOut,
    COutPoint,
    CScript,
    lx,
)
from bitcoin.core.serialize import BytesSerializer

from xtransfer.bitcoin.address import BitcoinAddressType, get_address_info
from xtransfer.bitcoin.coinselect import (
    CoinSelectionResult,
    Utxo,
    select_utxos_for_spend,
    select_utxos_for_spend_all,
)
from xtransfer.bitcoin.esplora import TxHexSource, UtxoSource
from xtransfer.contracts import PsbtInput, PsbtOutput, UnsignedPsbt
from xtransfer.errors import (
    InsufficientFundsError,
    InvalidAddressError,
    RpcFailureError,
    XTransferError,
)

logger = logging.getLogger(__name__)

PSBT_MAGIC = b"psbt\xff"

# key types
PSBT_GLOBAL_UNSIGNED_TX = 0x00
PSBT_IN_NON_WITNESS_UTXO = 0x00
PSBT_IN_WITNESS_UTXO = 0x01
PSBT_IN_TAP_INTERNAL_KEY = 0x17

TX_VERSION = 2
DEFAULT_SEQUENCE = 0xFFFFFFFF
LOCKTIME = 0

_LEGACY_INPUTS = (BitcoinAddressType.P2PKH, BitcoinAddressType.P2SH)
_WITNESS_INPUTS = (BitcoinAddressType.P2WPKH, BitcoinAddressType.P2TR)


def _key_value(key_type: int, value: bytes, key_data: bytes = b"") -> bytes:
    """One PSBT map entry: <keylen><keytype|keydata><valuelen><value>."""
    return BytesSerializer.serialize(bytes([key_type]) + key_data) + BytesSerializer.serialize(value)


def serialize_unsigned_tx(inputs: list[Utxo], outputs: list[tuple[bytes, int]]) -> bytes:
    """Serialize a transaction with empty scriptSigs and no witnesses."""
    txins = [
        CMutableTxIn(COutPoint(lx(utxo.txid), utxo.vout), CScript(), DEFAULT_SEQUENCE)
        for utxo in inputs
    ]
    txouts = [CMutableTxOut(value, CScript(script)) for script, value in outputs]

    tx = CMutableTransaction(txins, txouts, nLockTime=LOCKTIME, nVersion=TX_VERSION)
    return tx.serialize()


def witness_utxo(script: bytes, value: int) -> bytes:
    """Serialized spent output: value + scriptPubKey."""
    return CMutableTxOut(value, CScript(script)).serialize()


def _normalize_internal_key(key: Union[str, bytes]) -> bytes:
    raw = bytes.fromhex(key.removeprefix("0x")) if isinstance(key, str) else bytes(key)
    # compressed keys carry a parity byte in front of the x coordinate
    if len(raw) == 33:
        raw = raw[1:]
    if len(raw) != 32:
        raise InvalidAddressError(f"Taproot internal key must be 32 bytes, got {len(raw)}")
    return raw


async def assemble_psbt(
    selection: CoinSelectionResult,
    sender: str,
    recipient: str,
    tx_source: TxHexSource,
    tap_internal_key: Optional[Union[str, bytes]] = None,
) -> UnsignedPsbt:
    """Serialize a coin selection into an unsigned PSBT.

    Args:
        selection: Output of the coin selector
        sender: Sender address (owner of every input)
        recipient: Recipient address
        tx_source: Fetches previous transactions for legacy inputs
        tap_internal_key: x-only internal key for taproot senders

    Returns:
        UnsignedPsbt

    Raises:
        InvalidAddressError: Unsupported sender type or bad internal key
        RpcFailureError: A previous transaction could not be fetched
    """
    sender_info = get_address_info(sender)
    sender_type = sender_info.type

    if sender_type not in _LEGACY_INPUTS + _WITNESS_INPUTS:
        raise InvalidAddressError(f"Unsupported address type: {sender_type.value}")

    internal_key = None
    if sender_type == BitcoinAddressType.P2TR and tap_internal_key is not None:
        internal_key = _normalize_internal_key(tap_internal_key)

    input_maps: list[bytes] = []
    for utxo in selection.inputs:
        if sender_type in _LEGACY_INPUTS:
            prev_tx_hex = await tx_source.get_tx_hex(utxo.txid)
            entry = _key_value(PSBT_IN_NON_WITNESS_UTXO, bytes.fromhex(prev_tx_hex))
        else:
            script = bytes.fromhex(utxo.script) if utxo.script else sender_info.script_pubkey
            entry = _key_value(PSBT_IN_WITNESS_UTXO, witness_utxo(script, utxo.value))
            if internal_key is not None:
                entry += _key_value(PSBT_IN_TAP_INTERNAL_KEY, internal_key)
        input_maps.append(entry + b"\x00")

    outputs = [
        (get_address_info(output.address or sender).script_pubkey, output.value)
        for output in selection.outputs
    ]
    unsigned_tx = serialize_unsigned_tx(selection.inputs, outputs)

    psbt = PSBT_MAGIC
    psbt += _key_value(PSBT_GLOBAL_UNSIGNED_TX, unsigned_tx) + b"\x00"
    psbt += b"".join(input_maps)
    psbt += b"\x00" * len(outputs)

    transfer_amount = sum(
        output.value for output in selection.outputs if output.address == recipient
    )
    fee_rate = selection.fee / selection.vsize if selection.vsize else 0.0

    return UnsignedPsbt(
        psbt_base64=base64.b64encode(psbt).decode(),
        psbt_hex=psbt.hex(),
        fee=selection.fee,
        fee_rate=fee_rate,
        vsize=selection.vsize,
        transfer_amount=transfer_amount,
        inputs=[
            PsbtInput(
                txid=utxo.txid,
                vout=utxo.vout,
                value=utxo.value,
                witness=sender_type in _WITNESS_INPUTS,
            )
            for utxo in selection.inputs
        ],
        outputs=[
            PsbtOutput(address=output.address or sender, value=output.value)
            for output in selection.outputs
        ],
    )


def _not_enough_btc(testnet: bool) -> str:
    symbol = "tBTC" if testnet else "BTC"
    return f"You don't have enough BTC ({symbol}) for the transaction. Lower your BTC amount and try again"


async def create_bitcoin_transaction(
    sender: str,
    recipient: str,
    amount: int,
    fee_rate: float,
    utxo_source: UtxoSource,
    tx_source: TxHexSource,
    transfer_all: bool = False,
    network: Optional[str] = None,
    tap_internal_key: Optional[Union[str, bytes]] = None,
) -> UnsignedPsbt:
    """Fetch UTXOs, select inputs and assemble the unsigned PSBT.

    Args:
        sender: Sender address
        recipient: Recipient address
        amount: Amount in satoshis (ignored when transfer_all)
        fee_rate: Fee rate in sat/vB
        utxo_source: Lists the sender's UTXOs
        tx_source: Fetches previous transactions for legacy inputs
        transfer_all: Spend the whole balance
        network: Expected network (mainnet/testnet)
        tap_internal_key: x-only internal key for taproot senders

    Returns:
        UnsignedPsbt

    Raises:
        InsufficientFundsError: Not enough balance for amount + fee
        RpcFailureError: A UTXO or previous-transaction fetch failed
        AmountBelowDustError: Output below dust
        InvalidAddressError: Undecodable address
    """
    user_message = _not_enough_btc(network in ("testnet", "regtest"))

    try:
        utxos = await utxo_source.get_utxos(sender)

        if transfer_all:
            selection = select_utxos_for_spend_all(sender, recipient, fee_rate, utxos, network)
        else:
            selection = select_utxos_for_spend(sender, recipient, amount, fee_rate, utxos, network)

        psbt = await assemble_psbt(selection, sender, recipient, tx_source, tap_internal_key)
    except (InsufficientFundsError, RpcFailureError) as e:
        logger.warning(f"Failed to create Bitcoin transaction: {e.message}")
        raise type(e)(e.message, user_message=user_message) from e
    except XTransferError:
        raise
    except Exception as e:
        logger.warning(f"Failed to create Bitcoin transaction: {e}")
        raise RpcFailureError(str(e), user_message=user_message) from e

    logger.info(
        f"Built PSBT {sender} -> {recipient}: {psbt.transfer_amount} sats, "
        f"fee={psbt.fee} ({psbt.fee_rate:.2f} sat/vB)"
    )
    return psbt
