"""
Pytest configuration and shared fixtures.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from chains import ChainRegistry
from models import ChainConfig, ChainSelection, FetchResult, SentimentResult, TransferEvent
from oracle_updater import OracleUpdater

TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def registry():
    """Three-chain registry with placeholder endpoints."""
    return ChainRegistry((
        ChainConfig(
            name="Ethereum Sepolia", chain_id=11155111,
            rpc_url="http://sepolia.invalid", token_address="0x" + "11" * 20,
            token_decimals=6,
        ),
        ChainConfig(
            name="Base Sepolia", chain_id=84532,
            rpc_url="http://base.invalid", token_address="0x" + "22" * 20,
            token_decimals=6,
        ),
        ChainConfig(
            name="Monad Testnet", chain_id=10143,
            rpc_url="http://monad.invalid", token_address="0x" + "33" * 20,
            token_decimals=18,
        ),
    ))


@pytest.fixture
def two_chains():
    return [
        ChainSelection(chain_id=11155111, name="Ethereum Sepolia"),
        ChainSelection(chain_id=84532, name="Base Sepolia"),
    ]


@pytest.fixture
def fetch_result():
    return FetchResult(
        summary="Found 2 total transfers across selected chains. Total value: 3.5 "
                "(approximate, aggregated across different tokens/chains).",
        raw_events=(
            TransferEvent(chain="Ethereum Sepolia", value="1.5"),
            TransferEvent(chain="Base Sepolia", value="2.0"),
        ),
    )


@pytest.fixture
def fetcher(fetch_result):
    mock = MagicMock()
    mock.fetch = AsyncMock(return_value=fetch_result)
    return mock


@pytest.fixture
def analyzer():
    mock = MagicMock()
    mock.analyze = AsyncMock(return_value=SentimentResult(score=4, raw_response="4"))
    return mock


@pytest.fixture
def publisher():
    mock = MagicMock()
    mock.publish = AsyncMock(return_value=TX_HASH)
    return mock


@pytest.fixture
def updater(registry, fetcher, analyzer, publisher):
    return OracleUpdater(registry, fetcher, analyzer, publisher)


@pytest.fixture
def gate():
    """Event that blocks a fake fetch until the test releases it."""
    return asyncio.Event()


@pytest.fixture
def gated_fetcher(fetcher, fetch_result, gate):
    async def _fetch(chains):
        await gate.wait()
        return fetch_result

    fetcher.fetch = AsyncMock(side_effect=_fetch)
    return fetcher
