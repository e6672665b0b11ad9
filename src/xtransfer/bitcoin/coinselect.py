"""UTXO coin selection.

Ordering policy is largest-first: UTXOs are accumulated from the biggest
value down, recomputing the fee after every addition, until the running sum
covers amount + fee.

Invariant for every result: sum(inputs) == sum(outputs) + fee.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from xtransfer.bitcoin.address import get_address_info, get_address_type
from xtransfer.bitcoin.sizing import DUST_LIMITS, dust_limit, fee_for, get_size_info
from xtransfer.errors import (
    AmountBelowDustError,
    InsufficientFundsError,
    InvalidAddressError,
)

logger = logging.getLogger(__name__)

SATS_PER_BTC = 100_000_000


@dataclass
class Utxo:
    """An unspent output owned by the sender."""

    txid: str
    vout: int
    value: int  # satoshis
    address: str = ""
    script: Optional[str] = None  # hex scriptPubKey
    is_witness: bool = False
    confirmed: bool = True

    @property
    def outpoint(self) -> tuple[str, int]:
        return self.txid, self.vout


@dataclass
class TxOutput:
    """A transaction output."""

    address: str
    value: int


@dataclass
class CoinSelectionResult:
    """Inputs and outputs chosen for a transfer."""

    inputs: list[Utxo]
    outputs: list[TxOutput]
    fee: int
    vsize: float
    transfer_amount: int
    is_custom_fee_rate: bool = False
    filtered_utxos: list[Utxo] = field(default_factory=list)

    @property
    def input_total(self) -> int:
        return sum(utxo.value for utxo in self.inputs)

    @property
    def output_total(self) -> int:
        return sum(output.value for output in self.outputs)

    @property
    def change_output(self) -> Optional[TxOutput]:
        """The change output, if one was created."""
        return self.outputs[1] if len(self.outputs) > 1 else None

    @property
    def is_balanced(self) -> bool:
        return self.input_total == self.output_total + self.fee


def format_btc(sats: int) -> str:
    return f"{sats / SATS_PER_BTC:.8f}"


def _check_recipient(recipient: str, network: Optional[str]) -> int:
    """Validate the recipient and return its dust limit."""
    info = get_address_info(recipient)
    if network and not _same_network(info.network, network):
        raise InvalidAddressError(
            f"Recipient {recipient} is a {info.network} address, expected {network}"
        )
    return DUST_LIMITS.get(info.type, 546)


def _same_network(address_network: str, network: str) -> bool:
    # regtest addresses share testnet legacy version bytes
    if network in ("testnet", "regtest"):
        return address_network in ("testnet", "regtest")
    return address_network == network


def _below_dust(recipient_dust: int) -> AmountBelowDustError:
    return AmountBelowDustError(
        f"Amount below recipient dust limit {recipient_dust}",
        user_message=f"You must transfer at least {format_btc(recipient_dust)} BTC",
    )


def get_spendable_amount(
    utxos: list[Utxo], fee_rate: float, recipients: list[str], sender: str
) -> tuple[int, int]:
    """Balance left after paying the fee for spending all ``utxos``.

    Returns:
        Tuple of (spendable_amount, fee)
    """
    balance = sum(utxo.value for utxo in utxos)
    fee = fee_for(get_size_info(sender, len(utxos), recipients), fee_rate)
    return max(0, balance - fee), fee


def filter_uneconomical_utxos(
    utxos: list[Utxo], fee_rate: float, recipients: list[str], sender: str
) -> list[Utxo]:
    """Drop UTXOs below the input dust limit or whose inclusion lowers the spendable amount.

    Returns the kept UTXOs sorted largest first.
    """
    input_dust = DUST_LIMITS[get_address_type(sender)]
    candidates = sorted(
        (utxo for utxo in utxos if utxo.value >= input_dust),
        key=lambda utxo: utxo.value,
    )

    kept = list(candidates)
    for utxo in candidates:
        without = [u for u in kept if u.outpoint != utxo.outpoint]
        spendable_without, _ = get_spendable_amount(without, fee_rate, recipients, sender)
        spendable, _ = get_spendable_amount(kept, fee_rate, recipients, sender)

        if spendable <= 0 or spendable_without > spendable:
            kept = without

    dropped = len(utxos) - len(kept)
    if dropped:
        logger.debug(f"Dropped {dropped} uneconomical UTXOs at {fee_rate} sat/vB")

    return list(reversed(kept))


def select_utxos_for_spend(
    sender: str,
    recipient: str,
    amount: int,
    fee_rate: float,
    utxos: list[Utxo],
    network: Optional[str] = None,
) -> CoinSelectionResult:
    """Select UTXOs to send ``amount`` to ``recipient`` with change back to ``sender``.

    Args:
        sender: Sender address (change address)
        recipient: Recipient address
        amount: Amount in satoshis
        fee_rate: Fee rate in sat/vB
        utxos: Sender's spendable UTXOs
        network: Expected network of the recipient (mainnet/testnet)

    Returns:
        CoinSelectionResult

    Raises:
        InvalidAddressError: Recipient cannot be decoded
        AmountBelowDustError: Amount below the recipient dust limit
        InsufficientFundsError: UTXOs cannot cover amount + fee
    """
    recipient_dust = _check_recipient(recipient, network)
    if amount < recipient_dust:
        raise _below_dust(recipient_dust)

    recipients = [recipient, sender]
    ordered = sorted(utxos, key=lambda utxo: utxo.value, reverse=True)
    filtered = filter_uneconomical_utxos(ordered, fee_rate, recipients, sender)

    selected: list[Utxo] = []
    total = 0
    vsize: Optional[float] = None

    for utxo in filtered:
        vsize = get_size_info(sender, len(selected), recipients)
        if total >= amount + fee_for(vsize, fee_rate):
            break

        total += utxo.value
        selected.append(utxo)
        vsize = get_size_info(sender, len(selected), recipients)

    if vsize is None:
        raise InsufficientFundsError("No spendable UTXOs")

    fee = fee_for(vsize, fee_rate)
    remainder = total - amount - fee
    outputs = [TxOutput(address=recipient, value=amount)]
    change_dust = dust_limit(sender)

    if remainder < change_dust:
        # without a change output the transaction is smaller and so is the minimum fee
        single_vsize = get_size_info(sender, len(selected), recipients[:1])
        single_fee = fee_for(single_vsize, fee_rate)
        if total - amount < single_fee:
            raise InsufficientFundsError(
                f"Selected {total} sats, need {amount} + fee {single_fee}"
            )

        logger.warning(
            f"Change output of {max(remainder, 0)} sats is below dust limit ({change_dust}), "
            f"omitting change output"
        )
        return CoinSelectionResult(
            inputs=selected,
            outputs=outputs,
            fee=total - amount,
            vsize=single_vsize,
            transfer_amount=amount,
            is_custom_fee_rate=total - amount != single_fee,
            filtered_utxos=filtered,
        )

    outputs.append(TxOutput(address=sender, value=remainder))
    logger.info(
        f"Selected {len(selected)}/{len(filtered)} UTXOs: amount={amount} "
        f"fee={fee} change={remainder}"
    )
    return CoinSelectionResult(
        inputs=selected,
        outputs=outputs,
        fee=fee,
        vsize=vsize,
        transfer_amount=amount,
        filtered_utxos=filtered,
    )


def select_utxos_for_spend_all(
    sender: str,
    recipient: str,
    fee_rate: float,
    utxos: list[Utxo],
    network: Optional[str] = None,
) -> CoinSelectionResult:
    """Spend every economical UTXO to a single recipient output.

    The fee is deducted from the total; no change output is created.

    Raises:
        InvalidAddressError: Recipient cannot be decoded
        InsufficientFundsError: The fee consumes the whole balance
        AmountBelowDustError: The remaining amount is below the recipient dust limit
    """
    recipient_dust = _check_recipient(recipient, network)
    recipients = [recipient]

    filtered = filter_uneconomical_utxos(utxos, fee_rate, recipients, sender)
    vsize = get_size_info(sender, len(filtered), recipients)
    fee = fee_for(vsize, fee_rate)
    amount = sum(utxo.value for utxo in filtered) - fee

    if amount <= 0:
        raise InsufficientFundsError(f"Fee {fee} exceeds spendable balance")
    if amount < recipient_dust:
        raise _below_dust(recipient_dust)

    logger.info(f"Spend all: {len(filtered)} UTXOs, amount={amount} fee={fee}")
    return CoinSelectionResult(
        inputs=filtered,
        outputs=[TxOutput(address=recipient, value=amount)],
        fee=fee,
        vsize=vsize,
        transfer_amount=amount,
        filtered_utxos=filtered,
    )
