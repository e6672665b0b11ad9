"""Bitcoin UTXO selection and PSBT assembly."""

from xtransfer.bitcoin.address import (
    BitcoinAddressInfo,
    BitcoinAddressType,
    get_address_info,
    is_valid_address,
)
from xtransfer.bitcoin.coinselect import (
    CoinSelectionResult,
    TxOutput,
    Utxo,
    filter_uneconomical_utxos,
    get_spendable_amount,
    select_utxos_for_spend,
    select_utxos_for_spend_all,
)
from xtransfer.bitcoin.esplora import (
    BitcoinFeeRates,
    EsploraClient,
    TxHexSource,
    UtxoSource,
)
from xtransfer.bitcoin.psbt import assemble_psbt, create_bitcoin_transaction
from xtransfer.bitcoin.sizing import DUST_LIMITS, estimate_tx_vbytes, get_size_info

__all__ = [
    "BitcoinAddressInfo",
    "BitcoinAddressType",
    "get_address_info",
    "is_valid_address",
    "CoinSelectionResult",
    "TxOutput",
    "Utxo",
    "filter_uneconomical_utxos",
    "get_spendable_amount",
    "select_utxos_for_spend",
    "select_utxos_for_spend_all",
    "BitcoinFeeRates",
    "EsploraClient",
    "TxHexSource",
    "UtxoSource",
    "assemble_psbt",
    "create_bitcoin_transaction",
    "DUST_LIMITS",
    "estimate_tx_vbytes",
    "get_size_info",
]
