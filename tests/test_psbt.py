"""Tests for PSBT assembly and end-to-end Bitcoin transaction creation."""

import base64
import struct
from unittest.mock import AsyncMock

import pytest
from bitcoin.core import CTransaction, b2lx
from bitcoin.core.serialize import BytesSerializer

from conftest import BTC_P2PKH, BTC_P2TR, BTC_RECIPIENT, BTC_SENDER
from xtransfer.bitcoin.address import get_address_info
from xtransfer.bitcoin.coinselect import Utxo, select_utxos_for_spend, select_utxos_for_spend_all
from xtransfer.bitcoin.psbt import (
    PSBT_MAGIC,
    assemble_psbt,
    create_bitcoin_transaction,
    serialize_unsigned_tx,
    witness_utxo,
)
from xtransfer.errors import InsufficientFundsError, RpcFailureError

# any well-formed transaction hex works as a previous transaction here
PREV_TX_HEX = "0200000001" + "ab" * 32 + "00000000" + "00" + "ffffffff" + "01" + "e803000000000000" + "00" + "00000000"
INTERNAL_KEY = "cc8a4bc64d897bddc5fbc2f670f7a8ba0b386779106cf1223c6fc5d7cd6fc115"


def make_utxos(owner: str, *values: int) -> list[Utxo]:
    return [
        Utxo(txid=f"{index + 1:064x}", vout=index, value=value, address=owner)
        for index, value in enumerate(values)
    ]


@pytest.fixture
def tx_source():
    source = AsyncMock()
    source.get_tx_hex = AsyncMock(return_value=PREV_TX_HEX)
    return source


class TestEncoding:
    """Tests for low-level encoders."""

    def test_unsigned_tx_has_no_witness_marker(self):
        """Test the global transaction is in legacy (non-witness) form."""
        utxos = make_utxos(BTC_SENDER, 5000, 3000)
        script = get_address_info(BTC_RECIPIENT).script_pubkey
        raw = serialize_unsigned_tx(utxos, [(script, 7000)])

        assert raw[4:6] != b"\x00\x01"
        tx = CTransaction.deserialize(raw)
        assert tx.nVersion == 2
        assert tx.nLockTime == 0
        assert [(b2lx(txin.prevout.hash), txin.prevout.n) for txin in tx.vin] == [
            (utxos[0].txid, 0),
            (utxos[1].txid, 1),
        ]
        assert all(txin.scriptSig == b"" and txin.nSequence == 0xFFFFFFFF for txin in tx.vin)
        assert [(txout.nValue, bytes(txout.scriptPubKey)) for txout in tx.vout] == [(7000, script)]

    def test_witness_utxo(self):
        """Test a spent output serializes as value then length-prefixed script."""
        script = bytes.fromhex("0014" + "11" * 20)
        assert witness_utxo(script, 5000) == struct.pack("<q", 5000) + b"\x16" + script


class TestAssemblePsbt:
    """Tests for assemble_psbt."""

    @pytest.mark.asyncio
    async def test_segwit_inputs_carry_witness_utxo(self, tx_source):
        """Test segwit inputs carry WITNESS_UTXO."""
        selection = select_utxos_for_spend(BTC_SENDER, BTC_RECIPIENT, 6000, 5, make_utxos(BTC_SENDER, 5000, 3000, 2000))
        psbt = await assemble_psbt(selection, BTC_SENDER, BTC_RECIPIENT, tx_source)
        raw = bytes.fromhex(psbt.psbt_hex)
        sender_script = get_address_info(BTC_SENDER).script_pubkey

        assert raw.startswith(PSBT_MAGIC)
        assert base64.b64decode(psbt.psbt_base64) == raw
        # WITNESS_UTXO entry of the first input
        assert b"\x01\x01" + b"\x1f" + witness_utxo(sender_script, 5000) in raw
        tx_source.get_tx_hex.assert_not_called()

        assert psbt.fee == 1043
        assert psbt.transfer_amount == 6000
        assert psbt.fee_rate == pytest.approx(1043 / 208.5)
        assert all(item.witness for item in psbt.inputs)
        assert [(o.address, o.value) for o in psbt.outputs] == [(BTC_RECIPIENT, 6000), (BTC_SENDER, 957)]

    @pytest.mark.asyncio
    async def test_unsigned_tx_layout(self, tx_source):
        """Test the global unsigned transaction layout."""
        selection = select_utxos_for_spend(BTC_SENDER, BTC_RECIPIENT, 1000, 5, make_utxos(BTC_SENDER, 5000))
        psbt = await assemble_psbt(selection, BTC_SENDER, BTC_RECIPIENT, tx_source)
        raw = bytes.fromhex(psbt.psbt_hex)

        # global map: key {0x00}, then the unsigned transaction
        assert raw[5:7] == b"\x01\x00"
        tx_length = raw[7]
        tx = raw[8:8 + tx_length]

        assert struct.unpack("<i", tx[:4])[0] == 2
        assert tx[4] == 1  # one input
        assert tx[5:37] == bytes.fromhex(selection.inputs[0].txid)[::-1]
        assert tx[-4:] == b"\x00\x00\x00\x00"
        # global separator follows the transaction
        assert raw[8 + tx_length] == 0

    @pytest.mark.asyncio
    async def test_legacy_inputs_fetch_previous_transactions(self, tx_source):
        """Test legacy inputs carry the previous transaction."""
        utxos = make_utxos(BTC_P2PKH, 5000, 3000)
        selection = select_utxos_for_spend(BTC_P2PKH, BTC_RECIPIENT, 6000, 2, utxos)
        psbt = await assemble_psbt(selection, BTC_P2PKH, BTC_RECIPIENT, tx_source)
        raw = bytes.fromhex(psbt.psbt_hex)
        prev_tx = bytes.fromhex(PREV_TX_HEX)

        assert tx_source.get_tx_hex.await_count == len(selection.inputs)
        tx_source.get_tx_hex.assert_any_await(utxos[0].txid)
        assert b"\x01\x00" + BytesSerializer.serialize(prev_tx) in raw
        assert not any(item.witness for item in psbt.inputs)

    @pytest.mark.asyncio
    async def test_taproot_internal_key(self, tx_source):
        """Test the taproot internal key is written."""
        selection = select_utxos_for_spend(BTC_P2TR, BTC_RECIPIENT, 1000, 5, make_utxos(BTC_P2TR, 5000))
        psbt = await assemble_psbt(selection, BTC_P2TR, BTC_RECIPIENT, tx_source, tap_internal_key=INTERNAL_KEY)
        raw = bytes.fromhex(psbt.psbt_hex)

        assert b"\x01\x17\x20" + bytes.fromhex(INTERNAL_KEY) in raw

    @pytest.mark.asyncio
    async def test_taproot_without_internal_key(self, tx_source):
        """Test no internal key entry without a key."""
        selection = select_utxos_for_spend(BTC_P2TR, BTC_RECIPIENT, 1000, 5, make_utxos(BTC_P2TR, 5000))
        psbt = await assemble_psbt(selection, BTC_P2TR, BTC_RECIPIENT, tx_source)

        assert b"\x01\x17\x20" not in bytes.fromhex(psbt.psbt_hex)

    @pytest.mark.asyncio
    async def test_spend_all_transfer_amount_is_derived(self, tx_source):
        """Test spend-all transfer amount."""
        selection = select_utxos_for_spend_all(BTC_SENDER, BTC_RECIPIENT, 1.69, make_utxos(BTC_SENDER, 1000, 1000))
        psbt = await assemble_psbt(selection, BTC_SENDER, BTC_RECIPIENT, tx_source)

        assert psbt.transfer_amount == 1700
        assert psbt.fee == 300


class TestCreateBitcoinTransaction:
    """Tests for create_bitcoin_transaction."""

    @pytest.mark.asyncio
    async def test_success(self, tx_source):
        """Test successful transaction creation."""
        utxo_source = AsyncMock()
        utxo_source.get_utxos = AsyncMock(return_value=make_utxos(BTC_SENDER, 5000, 3000, 2000))

        psbt = await create_bitcoin_transaction(
            BTC_SENDER, BTC_RECIPIENT, 6000, 5, utxo_source, tx_source, network="mainnet"
        )

        utxo_source.get_utxos.assert_awaited_once_with(BTC_SENDER)
        assert psbt.transfer_amount == 6000
        assert len(psbt.inputs) == 2

    @pytest.mark.asyncio
    async def test_transfer_all(self, tx_source):
        """Test transfer-all creation."""
        utxo_source = AsyncMock()
        utxo_source.get_utxos = AsyncMock(return_value=make_utxos(BTC_SENDER, 1000, 1000))

        psbt = await create_bitcoin_transaction(
            BTC_SENDER, BTC_RECIPIENT, 0, 1.69, utxo_source, tx_source, transfer_all=True
        )

        assert psbt.transfer_amount == 1700
        assert len(psbt.outputs) == 1

    @pytest.mark.asyncio
    async def test_shortfall_keeps_its_kind(self, tx_source):
        """Test shortfall keeps InsufficientFundsError."""
        utxo_source = AsyncMock()
        utxo_source.get_utxos = AsyncMock(return_value=make_utxos(BTC_SENDER, 1000))

        with pytest.raises(InsufficientFundsError) as exc_info:
            await create_bitcoin_transaction(BTC_SENDER, BTC_RECIPIENT, 5000, 5, utxo_source, tx_source)

        assert "Lower your BTC amount" in exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_utxo_fetch_failure(self, tx_source):
        """Test UTXO fetch failure keeps its kind."""
        utxo_source = AsyncMock()
        utxo_source.get_utxos = AsyncMock(side_effect=RpcFailureError("timeout"))

        with pytest.raises(RpcFailureError) as exc_info:
            await create_bitcoin_transaction(BTC_SENDER, BTC_RECIPIENT, 5000, 5, utxo_source, tx_source)

        assert "Lower your BTC amount" in exc_info.value.user_message
        assert exc_info.value.message == "timeout"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self):
        """Test unexpected errors are wrapped."""
        utxo_source = AsyncMock()
        utxo_source.get_utxos = AsyncMock(return_value=make_utxos(BTC_P2PKH, 5000))
        tx_source = AsyncMock()
        tx_source.get_tx_hex = AsyncMock(side_effect=RuntimeError("connection reset"))

        with pytest.raises(RpcFailureError) as exc_info:
            await create_bitcoin_transaction(BTC_P2PKH, BTC_RECIPIENT, 1000, 2, utxo_source, tx_source)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "(BTC)" in exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_testnet_message(self, tx_source):
        """Test testnet user messages."""
        utxo_source = AsyncMock()
        utxo_source.get_utxos = AsyncMock(return_value=[])

        with pytest.raises(InsufficientFundsError) as exc_info:
            await create_bitcoin_transaction(
                "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx",
                "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx",
                1000, 5, utxo_source, tx_source, network="testnet",
            )

        assert "(tBTC)" in exc_info.value.user_message
