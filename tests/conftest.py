"""Pytest configuration and fixtures."""

import pytest

from xtransfer.chains import (
    CHAINS,
    AssetType,
    ChainAsset,
    ChainInfo,
    ConsensusFamily,
    XcmPallet,
)
from xtransfer.config import Settings

# Well-known dev accounts
ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
ALICE_HEX = "0xd43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
BOB_HEX = "0x8eaf04151687736326c9fea17e25fc5287613693c912909cb226aa4794f26a48"
EVM_ACCOUNT = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
WETH_CONTRACT = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

# BIP84 / BIP173 / BIP350 reference addresses
BTC_SENDER = "bc1qcr8te4kr609gcawutmrza0j4xv80jy8z306fyu"
BTC_RECIPIENT = "bc1q8c6fshw2dlwun7ekn9qwf37cu2rn755upcp6el"
BTC_P2WPKH = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
BTC_P2WSH = "bc1qrp33g0q5c5txsp9arysrx4k6zdkfs4nce4xj0gdcccefvpysxf3qccfmv3"
BTC_P2TR = "bc1p0xlxvlhemja6c4dqv22uapctqupfhlxm9h8z3k2e72q4k9hcz7vqzk5jj0"
BTC_P2PKH = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
BTC_P2SH = "3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy"
BTC_TESTNET = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from the process environment."""
    return Settings(_env_file=None)


@pytest.fixture
def polkadot() -> ChainInfo:
    return CHAINS["polkadot"]


@pytest.fixture
def statemint() -> ChainInfo:
    return CHAINS["statemint"]


@pytest.fixture
def statemine() -> ChainInfo:
    return CHAINS["statemine"]


@pytest.fixture
def hydradx() -> ChainInfo:
    return CHAINS["hydradx_main"]


@pytest.fixture
def acala() -> ChainInfo:
    return CHAINS["acala"]


@pytest.fixture
def moonbeam() -> ChainInfo:
    return CHAINS["moonbeam"]


@pytest.fixture
def mythos() -> ChainInfo:
    return CHAINS["mythos"]


@pytest.fixture
def ethereum() -> ChainInfo:
    return CHAINS["ethereum"]


@pytest.fixture
def bitcoin() -> ChainInfo:
    return CHAINS["bitcoin"]


@pytest.fixture
def bifrost() -> ChainInfo:
    """A parachain exposing only the currency-id pallet."""
    return ChainInfo(
        slug="bifrost_dot",
        consensus=ConsensusFamily.SUBSTRATE_PARA,
        para_id=2030,
        relay_parent="polkadot",
        xcm_pallets=frozenset({XcmPallet.XTOKENS}),
    )


@pytest.fixture
def dot() -> ChainAsset:
    return ChainAsset(
        slug="polkadot-NATIVE-DOT",
        origin_chain="polkadot",
        symbol="DOT",
        decimals=10,
        asset_type=AssetType.NATIVE,
        price_id="polkadot",
    )


@pytest.fixture
def statemint_dot() -> ChainAsset:
    return ChainAsset(
        slug="statemint-NATIVE-DOT",
        origin_chain="statemint",
        symbol="DOT",
        decimals=10,
        asset_type=AssetType.NATIVE,
        multilocation={"parents": 1, "interior": "Here"},
        price_id="polkadot",
    )


@pytest.fixture
def statemint_usdt() -> ChainAsset:
    return ChainAsset(
        slug="statemint-LOCAL-USDt",
        origin_chain="statemint",
        symbol="USDt",
        decimals=6,
        asset_type=AssetType.LOCAL,
        multilocation={
            "parents": 0,
            "interior": {"X2": [{"PalletInstance": 50}, {"GeneralIndex": 1984}]},
        },
        asset_id="1984",
        price_id="tether",
    )


@pytest.fixture
def statemint_usdc() -> ChainAsset:
    return ChainAsset(
        slug="statemint-LOCAL-USDC",
        origin_chain="statemint",
        symbol="USDC",
        decimals=6,
        asset_type=AssetType.LOCAL,
        multilocation={
            "parents": 0,
            "interior": {"X2": [{"PalletInstance": 50}, {"GeneralIndex": 1337}]},
        },
        asset_id="1337",
        price_id="usd-coin",
    )


@pytest.fixture
def statemint_weth() -> ChainAsset:
    """Ethereum WETH as represented on Asset Hub."""
    return ChainAsset(
        slug="statemint-LOCAL-WETH",
        origin_chain="statemint",
        symbol="WETH",
        decimals=18,
        asset_type=AssetType.BRIDGED,
        multilocation={
            "parents": 2,
            "interior": {
                "X2": [
                    {"GlobalConsensus": {"Ethereum": {"chainId": 1}}},
                    {"AccountKey20": {"network": None, "key": WETH_CONTRACT.lower()}},
                ]
            },
        },
    )


@pytest.fixture
def ethereum_weth() -> ChainAsset:
    return ChainAsset(
        slug="ethereum-ERC20-WETH",
        origin_chain="ethereum",
        symbol="WETH",
        decimals=18,
        asset_type=AssetType.BRIDGED,
        contract_address=WETH_CONTRACT,
    )


@pytest.fixture
def aca() -> ChainAsset:
    """Native token addressed by currency id only."""
    return ChainAsset(
        slug="acala-NATIVE-ACA",
        origin_chain="acala",
        symbol="ACA",
        decimals=12,
        asset_type=AssetType.NATIVE,
        currency_id={"Token": "ACA"},
    )


@pytest.fixture
def myth() -> ChainAsset:
    return ChainAsset(
        slug="mythos-NATIVE-MYTH",
        origin_chain="mythos",
        symbol="MYTH",
        decimals=18,
        asset_type=AssetType.NATIVE,
        multilocation={"parents": 0, "interior": "Here"},
    )


@pytest.fixture
def hdx() -> ChainAsset:
    return ChainAsset(
        slug="hydradx_main-NATIVE-HDX",
        origin_chain="hydradx_main",
        symbol="HDX",
        decimals=12,
        asset_type=AssetType.NATIVE,
        asset_id="0",
        price_id="hydradx",
    )


@pytest.fixture
def hydradx_usdt() -> ChainAsset:
    return ChainAsset(
        slug="hydradx_main-LOCAL-USDT",
        origin_chain="hydradx_main",
        symbol="USDT",
        decimals=6,
        asset_type=AssetType.LOCAL,
        asset_id="10",
        price_id="tether",
    )


@pytest.fixture
def hydradx_dot() -> ChainAsset:
    return ChainAsset(
        slug="hydradx_main-LOCAL-DOT",
        origin_chain="hydradx_main",
        symbol="DOT",
        decimals=10,
        asset_type=AssetType.LOCAL,
        asset_id="5",
        price_id="polkadot",
    )


@pytest.fixture
def fixed_request_id():
    """Deterministic request id factory."""
    return lambda: "req-0001"
