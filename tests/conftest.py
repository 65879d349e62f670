"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from base58 import b58encode
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from burnbot.config import AppConfig, Settings

# Wrapped SOL mint: any valid public key works as a token identifier here.
TEST_MINT = "So11111111111111111111111111111111111111112"


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def secret_key(keypair) -> str:
    """The fixture keypair encoded the way CREATOR_PRIVATE_KEY expects it."""
    return b58encode(bytes(keypair)).decode()


@pytest.fixture
def mint_address() -> str:
    return TEST_MINT


@pytest.fixture
def mint(mint_address) -> Pubkey:
    return Pubkey.from_string(mint_address)


@pytest.fixture
def test_config() -> AppConfig:
    """Provide a test configuration that never sleeps while settling."""
    return AppConfig(
        cycle={
            "interval_seconds": 60,
            "fee_reserve_sol": 0.005,
            "min_buy_sol": 0.001,
            "settle_timeout_seconds": 0,
            "settle_poll_seconds": 0,
        },
        logging={"level": "DEBUG"},
    )


@pytest.fixture
def test_settings(secret_key) -> Settings:
    """Provide settings that ignore the real environment's .env file."""
    return Settings(
        _env_file=None,
        rpc_endpoint="http://localhost:8899",
        creator_private_key=secret_key,
        token_mint_address=TEST_MINT,
        min_sol_balance=0.005,
    )


@pytest.fixture
def rpc_client() -> MagicMock:
    """An AsyncClient stand-in whose RPC methods are awaitable."""
    client = MagicMock()
    client.get_balance = AsyncMock()
    client.get_account_info = AsyncMock()
    client.get_token_account_balance = AsyncMock()
    client.get_latest_blockhash = AsyncMock()
    client.send_raw_transaction = AsyncMock()
    client.confirm_transaction = AsyncMock()
    client.close = AsyncMock()
    return client
