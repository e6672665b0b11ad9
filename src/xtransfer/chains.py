"""Chain and asset domain model.

ChainInfo and ChainAsset are resolved by an external registry and handed to
the engine fully populated. This module only holds the shapes, the small
amount of well-known topology the protocol selector needs (relay parents,
teleport trust pairs, consensus network ids) and a reference set of chains.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ConsensusFamily(str, Enum):
    """Consensus / VM family of a chain."""

    SUBSTRATE_RELAY = "substrate_relay"
    SUBSTRATE_PARA = "substrate_para"
    EVM = "evm"
    BITCOIN = "bitcoin"
    TON = "ton"
    CARDANO = "cardano"


class AssetType(str, Enum):
    """How an asset exists on its origin chain."""

    NATIVE = "native"
    LOCAL = "local"
    FOREIGN = "foreign"
    BRIDGED = "bridged"


class XcmPallet(str, Enum):
    """Pallets exposing cross-chain transfer entry points."""

    XCM_PALLET = "xcmPallet"  # relay chains
    POLKADOT_XCM = "polkadotXcm"
    XTOKENS = "xTokens"


class AccountFormat(str, Enum):
    """Native account encoding of a chain."""

    SS58 = "ss58"  # 32-byte AccountId32
    EVM = "evm"  # 20-byte AccountKey20


@dataclass(frozen=True)
class ChainInfo:
    """Information about a network."""

    slug: str
    consensus: ConsensusFamily
    para_id: Optional[int] = None
    relay_parent: Optional[str] = None  # relay slug for parachains
    evm_chain_id: Optional[int] = None
    bitcoin_network: Optional[str] = None  # mainnet / testnet
    xcm_pallets: frozenset = field(default_factory=frozenset)
    account_format: AccountFormat = AccountFormat.SS58
    is_testnet: bool = False

    @property
    def is_relay(self) -> bool:
        return self.consensus == ConsensusFamily.SUBSTRATE_RELAY

    @property
    def is_parachain(self) -> bool:
        return self.consensus == ConsensusFamily.SUBSTRATE_PARA

    @property
    def is_substrate(self) -> bool:
        return self.is_relay or self.is_parachain

    @property
    def is_pure_evm(self) -> bool:
        return self.consensus == ConsensusFamily.EVM

    @property
    def supports_xcm(self) -> bool:
        return bool(self.xcm_pallets)

    def has_pallet(self, pallet: XcmPallet) -> bool:
        return pallet in self.xcm_pallets

    @property
    def consensus_root(self) -> Optional[str]:
        """Slug of the relay chain this chain is secured by (itself for a relay)."""
        if self.is_relay:
            return self.slug
        if self.is_parachain:
            return self.relay_parent
        return None


@dataclass(frozen=True)
class ChainAsset:
    """Token metadata.

    ``multilocation`` is expressed relative to the origin chain, in the V4
    shape (``X1`` holds a one-element list).
    """

    slug: str
    origin_chain: str
    symbol: str
    decimals: int
    asset_type: AssetType
    multilocation: Optional[dict] = None
    asset_id: Optional[str] = None
    price_id: Optional[str] = None
    currency_id: Optional[object] = None  # opaque on-chain currency identifier
    currency_type: Optional[str] = None  # e.g. ForeignAsset / SelfReserve
    contract_address: Optional[str] = None  # ERC-20 contract on EVM chains

    @property
    def is_native(self) -> bool:
        return self.asset_type == AssetType.NATIVE

    @property
    def is_bridged(self) -> bool:
        return self.asset_type == AssetType.BRIDGED

    @property
    def has_multilocation(self) -> bool:
        return bool(self.multilocation)


def is_within_same_consensus(origin: ChainInfo, destination: ChainInfo) -> bool:
    """Check whether two chains share a relay chain (or one is the other's relay)."""
    if origin.slug == destination.slug:
        return True

    origin_root = origin.consensus_root
    destination_root = destination.consensus_root

    if origin_root is None or destination_root is None:
        return False

    return origin_root == destination_root


# ======================
# Topology
# ======================

# Relay <-> system parachain pairs trusted for teleports (either direction).
TELEPORT_PAIRS: frozenset = frozenset({
    ("polkadot", "statemint"),
    ("kusama", "statemine"),
    ("rococo", "rococo_assethub"),
    ("westend", "westend_assethub"),
})

# Asset-specific trust: (origin, destination) -> asset slug.
TELEPORT_ASSET_PAIRS: dict[tuple[str, str], str] = {
    ("mythos", "statemint"): "mythos-NATIVE-MYTH",
    ("statemint", "mythos"): "statemint-LOCAL-MYTH",
}

# GlobalConsensus network ids for relay chains.
RELAY_NETWORK_IDS: dict[str, str] = {
    "polkadot": "Polkadot",
    "kusama": "Kusama",
    "westend": "Westend",
    "rococo": "Rococo",
}


def is_teleport_pair(origin: ChainInfo, destination: ChainInfo, asset_slug: Optional[str] = None) -> bool:
    """Check whether origin and destination trust each other for teleports."""
    pair = (origin.slug, destination.slug)

    if pair in TELEPORT_PAIRS or (destination.slug, origin.slug) in TELEPORT_PAIRS:
        return True

    return asset_slug is not None and TELEPORT_ASSET_PAIRS.get(pair) == asset_slug


# ======================
# Reference chains
# ======================

_RELAY = frozenset({XcmPallet.XCM_PALLET})
_PARA_XCM = frozenset({XcmPallet.POLKADOT_XCM})
_PARA_XTOKENS = frozenset({XcmPallet.POLKADOT_XCM, XcmPallet.XTOKENS})

CHAINS: dict[str, ChainInfo] = {
    "polkadot": ChainInfo(
        slug="polkadot",
        consensus=ConsensusFamily.SUBSTRATE_RELAY,
        xcm_pallets=_RELAY,
    ),
    "kusama": ChainInfo(
        slug="kusama",
        consensus=ConsensusFamily.SUBSTRATE_RELAY,
        xcm_pallets=_RELAY,
    ),
    "statemint": ChainInfo(
        slug="statemint",
        consensus=ConsensusFamily.SUBSTRATE_PARA,
        para_id=1000,
        relay_parent="polkadot",
        xcm_pallets=_PARA_XCM,
    ),
    "statemine": ChainInfo(
        slug="statemine",
        consensus=ConsensusFamily.SUBSTRATE_PARA,
        para_id=1000,
        relay_parent="kusama",
        xcm_pallets=_PARA_XCM,
    ),
    "hydradx_main": ChainInfo(
        slug="hydradx_main",
        consensus=ConsensusFamily.SUBSTRATE_PARA,
        para_id=2034,
        relay_parent="polkadot",
        xcm_pallets=_PARA_XTOKENS,
    ),
    "acala": ChainInfo(
        slug="acala",
        consensus=ConsensusFamily.SUBSTRATE_PARA,
        para_id=2000,
        relay_parent="polkadot",
        xcm_pallets=_PARA_XTOKENS,
    ),
    "moonbeam": ChainInfo(
        slug="moonbeam",
        consensus=ConsensusFamily.SUBSTRATE_PARA,
        para_id=2004,
        relay_parent="polkadot",
        evm_chain_id=1284,
        xcm_pallets=_PARA_XTOKENS,
        account_format=AccountFormat.EVM,
    ),
    "mythos": ChainInfo(
        slug="mythos",
        consensus=ConsensusFamily.SUBSTRATE_PARA,
        para_id=3369,
        relay_parent="polkadot",
        xcm_pallets=_PARA_XCM,
        account_format=AccountFormat.EVM,
    ),
    "ethereum": ChainInfo(
        slug="ethereum",
        consensus=ConsensusFamily.EVM,
        evm_chain_id=1,
        account_format=AccountFormat.EVM,
    ),
    "sepolia_ethereum": ChainInfo(
        slug="sepolia_ethereum",
        consensus=ConsensusFamily.EVM,
        evm_chain_id=11155111,
        account_format=AccountFormat.EVM,
        is_testnet=True,
    ),
    "bitcoin": ChainInfo(
        slug="bitcoin",
        consensus=ConsensusFamily.BITCOIN,
        bitcoin_network="mainnet",
    ),
    "bitcoinTest": ChainInfo(
        slug="bitcoinTest",
        consensus=ConsensusFamily.BITCOIN,
        bitcoin_network="testnet",
        is_testnet=True,
    ),
}


def get_chain(slug: str) -> Optional[ChainInfo]:
    """Look up a reference chain by slug."""
    return CHAINS.get(slug)
