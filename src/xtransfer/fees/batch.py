"""Fee currency batching.

Chains with a multi-currency payment pallet keep the selected fee currency
as account state. The transfer is wrapped in ``utility.batchAll`` so the
currency is set right before the call and reset to native right after.
"""

from typing import Optional, Union

from xtransfer.contracts import CallDescriptor

NATIVE_CURRENCY_ID = "0"

BATCH_PALLET = "utility"
BATCH_METHOD = "batchAll"
FEE_PALLET = "multiTransactionPayment"
FEE_METHOD = "setCurrency"


def _is_local(currency: Optional[Union[str, int]]) -> bool:
    return currency is not None and str(currency) not in ("", NATIVE_CURRENCY_ID)


def set_currency(currency_id: str) -> dict:
    return {"pallet": FEE_PALLET, "method": FEE_METHOD, "args": [currency_id]}


def as_inner_call(call: CallDescriptor) -> dict:
    return {"pallet": call.pallet, "method": call.method, "args": call.args}


def wrap_with_fee_currency(
    call: CallDescriptor,
    current_setting: Optional[Union[str, int]],
    asset_id: Optional[str],
) -> CallDescriptor:
    """Wrap a call so it pays fees in ``asset_id``.

    Args:
        call: Substrate call to wrap
        current_setting: Fee currency currently set on the account (None or "0" for native)
        asset_id: Fee currency to pay with (None or "0" for native)

    Returns:
        The call itself, or a ``utility.batchAll`` descriptor around it
    """
    if call.kind != "substrate":
        raise ValueError("Only substrate calls can pay fees in another currency")

    currently_local = _is_local(current_setting)
    wants_local = _is_local(asset_id)
    inner = as_inner_call(call)

    if not currently_local and not wants_local:
        return call

    if not currently_local:
        calls = [set_currency(str(asset_id)), inner, set_currency(NATIVE_CURRENCY_ID)]
    elif not wants_local:
        calls = [set_currency(NATIVE_CURRENCY_ID), inner]
    elif str(asset_id) == str(current_setting):
        calls = [inner, set_currency(NATIVE_CURRENCY_ID)]
    else:
        calls = [set_currency(str(asset_id)), inner, set_currency(NATIVE_CURRENCY_ID)]

    return call.model_copy(
        update={"pallet": BATCH_PALLET, "method": BATCH_METHOD, "args": [calls]}
    )
