"""Versioned multi-location and multi-asset encoders.

All payloads are plain dicts in the shape the Substrate API client accepts,
wrapped in a version tag: ``{"V3": {...}}``. V3 and V4 differ in two places:
a single-junction interior is a bare junction in V3 and a one-element list in
V4, and an asset id is wrapped in ``Concrete`` in V3 only.
"""

import copy
import re
from typing import Any, Optional

from bip_utils import SS58Decoder

from xtransfer.chains import (
    RELAY_NETWORK_IDS,
    AccountFormat,
    ChainAsset,
    ChainInfo,
)
from xtransfer.errors import (
    EncodingMismatchError,
    InvalidAddressError,
    UnsupportedProtocolError,
)

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_ACCOUNT_ID_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

HERE = "Here"


def versioned(payload: Any, version: int) -> dict:
    """Wrap a payload in its version tag."""
    return {f"V{version}": payload}


def version_of(payload: dict) -> int:
    """Read the version tag of a versioned payload."""
    if not isinstance(payload, dict) or len(payload) != 1:
        raise EncodingMismatchError(f"Not a versioned payload: {payload!r}")

    (tag,) = payload.keys()
    if not (tag.startswith("V") and tag[1:].isdigit()):
        raise EncodingMismatchError(f"Invalid version tag {tag!r}")
    return int(tag[1:])


def make_interior(junctions: list[dict], version: int) -> Any:
    """Build an interior from a junction list."""
    if not junctions:
        return HERE

    key = f"X{len(junctions)}"
    if len(junctions) == 1 and version < 4:
        return {key: junctions[0]}
    return {key: list(junctions)}


def adapt_x1_interior(location: dict, version: int) -> dict:
    """Convert an X1 interior between the V3 (object) and V4 (list) shapes."""
    adapted = copy.deepcopy(location)
    interior = adapted.get("interior")

    if isinstance(interior, dict) and "X1" in interior:
        x1 = interior["X1"]
        if version < 4 and isinstance(x1, list):
            interior["X1"] = x1[0]
        elif version >= 4 and not isinstance(x1, list):
            interior["X1"] = [x1]

    return adapted


# ======================
# Accounts
# ======================

def normalize_evm_address(address: str) -> str:
    """Validate a 20-byte hex address."""
    if not address or not _EVM_ADDRESS_RE.match(address):
        raise InvalidAddressError(f"Invalid 20-byte address: {address}")
    return address.lower()


def decode_account_id(address: str) -> str:
    """Decode an SS58 address (or 32-byte hex) to a 0x-prefixed account id."""
    if address and _ACCOUNT_ID_RE.match(address):
        return address.lower()

    try:
        _, public_key = SS58Decoder.Decode(address)
    except Exception as e:
        raise InvalidAddressError(f"Invalid SS58 address {address}: {e}") from e

    if len(public_key) != 32:
        raise InvalidAddressError(f"SS58 address {address} is not a 32-byte account")
    return "0x" + public_key.hex()


def account_junction(chain: ChainInfo, address: str) -> dict:
    """Encode an account in the chain's native account format."""
    if chain.account_format == AccountFormat.EVM:
        return {"AccountKey20": {"network": None, "key": normalize_evm_address(address)}}
    return {"AccountId32": {"network": None, "id": decode_account_id(address)}}


# ======================
# Locations
# ======================

def get_destination_location(
    origin: ChainInfo,
    destination: ChainInfo,
    version: int,
    recipient: Optional[str] = None,
) -> dict:
    """Location of the destination chain as seen from the origin.

    When ``recipient`` is given (currency-id pallets), the account junction is
    appended so the location addresses the beneficiary directly.
    """
    parents = 0 if origin.is_relay else 1
    junctions: list[dict] = []

    if not destination.is_relay:
        if destination.para_id is None:
            raise EncodingMismatchError(f"{destination.slug} has no parachain id")
        junctions.append({"Parachain": destination.para_id})

    if recipient is not None:
        junctions.append(account_junction(destination, recipient))

    return versioned({"parents": parents, "interior": make_interior(junctions, version)}, version)


def get_bridge_destination_location(origin: ChainInfo, destination: ChainInfo, version: int) -> dict:
    """Location of a chain in another consensus system."""
    parents = 1 if origin.is_relay else 2

    if destination.is_pure_evm:
        if destination.evm_chain_id is None:
            raise EncodingMismatchError(f"{destination.slug} has no EVM chain id")
        network: Any = {"Ethereum": {"chainId": destination.evm_chain_id}}
    else:
        network = RELAY_NETWORK_IDS.get(destination.consensus_root or "")
        if network is None:
            raise UnsupportedProtocolError(f"Unknown consensus system for {destination.slug}")

    junctions: list[dict] = [{"GlobalConsensus": network}]
    if destination.is_parachain:
        junctions.append({"Parachain": destination.para_id})

    return versioned({"parents": parents, "interior": make_interior(junctions, version)}, version)


def get_beneficiary_location(destination: ChainInfo, recipient: str, version: int) -> dict:
    """Recipient location relative to the destination chain."""
    junction = account_junction(destination, recipient)
    return versioned({"parents": 0, "interior": make_interior([junction], version)}, version)


def get_asset_location(asset: ChainAsset, origin: ChainInfo, version: int) -> Optional[dict]:
    """Location of the asset relative to the origin chain, if known."""
    if asset.multilocation:
        return adapt_x1_interior(asset.multilocation, version)
    if asset.is_native and origin.is_relay:
        return {"parents": 0, "interior": HERE}
    return None


def get_asset_identifier(asset: ChainAsset, origin: ChainInfo, version: int) -> dict:
    """Asset id in the shape of the given version."""
    location = get_asset_location(asset, origin, version)
    if location is None:
        raise EncodingMismatchError(f"{asset.slug} has no multi-location metadata")

    if version < 4:
        return {"Concrete": location}
    return location


def get_multi_assets(asset: ChainAsset, origin: ChainInfo, amount: int, version: int) -> dict:
    """Versioned asset list carrying a single fungible amount."""
    return versioned(
        [
            {
                "id": get_asset_identifier(asset, origin, version),
                "fun": {"Fungible": str(amount)},
            }
        ],
        version,
    )
