"""Output contracts of the transfer construction engine.

These describe unsigned artifacts a client signs and submits itself.
NO signing or broadcasting happens here.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class EvmTransaction(BaseModel):
    """An unsigned EVM transaction (bridge gateway calls)."""

    chain_id: int = Field(..., description="EVM chain ID")
    from_address: str = Field(..., description="Sender address")
    to: str = Field(..., description="Contract address")
    value: str = Field(default="0", description="Value in wei (decimal string)")
    data: str = Field(default="0x", description="ABI-encoded call data")
    gas_limit: Optional[int] = Field(None, description="Gas limit, client may re-estimate")


class CallDescriptor(BaseModel):
    """A cross-chain transfer call ready to be wrapped, signed and submitted.

    For Substrate origins ``pallet``/``method``/``args`` map one-to-one onto
    ``api.tx[pallet][method](*args)``. For EVM origins ``evm_transaction``
    carries the encoded gateway call.
    """

    request_id: str = Field(..., description="Caller-visible id of this construction request")
    chain: str = Field(..., description="Origin chain slug")
    kind: str = Field(default="substrate", description="substrate or evm")
    pallet: str = Field(..., description="Pallet (or contract) name")
    method: str = Field(..., description="Call name")
    args: list[Any] = Field(default_factory=list, description="Positional call arguments")
    protocol: str = Field(..., description="TELEPORT, RESERVE_TRANSFER or BRIDGE_TRANSFER")
    xcm_version: int = Field(..., description="XCM version used by every payload")
    evm_transaction: Optional[EvmTransaction] = Field(None, description="Encoded EVM call")
    warnings: list[str] = Field(default_factory=list, description="Any warnings")


class PsbtInput(BaseModel):
    """Summary of a PSBT input."""

    txid: str
    vout: int
    value: int
    witness: bool


class PsbtOutput(BaseModel):
    """Summary of a PSBT output."""

    address: str
    value: int


class UnsignedPsbt(BaseModel):
    """A partially signed Bitcoin transaction awaiting signatures."""

    psbt_base64: str = Field(..., description="BIP-174 PSBT, base64")
    psbt_hex: str = Field(..., description="BIP-174 PSBT, hex")
    fee: int = Field(..., description="Absolute fee in satoshis")
    fee_rate: float = Field(..., description="Effective fee rate in sat/vB")
    vsize: float = Field(..., description="Estimated virtual size")
    transfer_amount: int = Field(..., description="Satoshis credited to the recipient")
    inputs: list[PsbtInput] = Field(default_factory=list)
    outputs: list[PsbtOutput] = Field(default_factory=list)
