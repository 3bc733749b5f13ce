"""
HTTP tests for the status API. Requests go through httpx's ASGI transport so
background update cycles run on the test event loop.
"""

import asyncio
import re
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

import main
from errors import AnalysisError
from models import OracleReading
from oracle_updater import OracleUpdater

SEPOLIA, BASE, MONAD = 11155111, 84532, 10143


@pytest.fixture
def services(monkeypatch, fetcher, analyzer, publisher):
    updater = OracleUpdater(main.registry, fetcher, analyzer, publisher)
    oracle = MagicMock()
    oracle.get_current_score = AsyncMock(return_value=OracleReading(
        score=6, summary="Found 12 total transfers", timestamp=1_700_000_000,
    ))
    monkeypatch.setattr(main, "updater", updater)
    monkeypatch.setattr(main, "oracle", oracle)
    return SimpleNamespace(updater=updater, oracle=oracle)


@pytest_asyncio.fixture
async def client(services):
    transport = httpx.ASGITransport(app=main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def wait_until_idle(client, attempts=200):
    for _ in range(attempts):
        body = (await client.get("/status")).json()
        if not body["isUpdating"]:
            return body
        await asyncio.sleep(0.01)
    raise AssertionError("update cycle did not finish")


def selection(*ids):
    return {"chains": [{"chainId": i, "name": f"chain-{i}"} for i in ids]}


class TestInfo:

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_get_chains_exposes_names_and_ids_only(self, client):
        resp = await client.get("/get-chains")

        assert resp.status_code == 200
        chains = resp.json()
        assert [c["chainId"] for c in chains] == [SEPOLIA, BASE, MONAD]
        for chain in chains:
            assert set(chain) == {"name", "chainId"}
        for cfg in main.registry:
            assert cfg.token_address is None or cfg.token_address not in resp.text
            assert cfg.rpc_url is None or cfg.rpc_url not in resp.text


class TestCurrentScore:

    @pytest.mark.asyncio
    async def test_reads_oracle(self, client):
        resp = await client.get("/get-current-score")
        assert resp.status_code == 200
        assert resp.json() == {
            "score": 6,
            "summary": "Found 12 total transfers",
            "timestamp": 1_700_000_000,
        }

    @pytest.mark.asyncio
    async def test_read_failure_is_500(self, client, services):
        services.oracle.get_current_score = AsyncMock(side_effect=ConnectionError("rpc down"))

        resp = await client.get("/get-current-score")

        assert resp.status_code == 500
        assert resp.json() == {"error": main.SCORE_READ_ERROR}
        services.oracle.get_current_score.assert_awaited_once()


class TestTrigger:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"chains": []},
        selection(SEPOLIA, BASE, MONAD, SEPOLIA, BASE, MONAD),
        selection(SEPOLIA, 1),
        {},
        {"chains": [{"name": "Base Sepolia"}]},
        {"chains": [{"chainId": "abc"}]},
        {"chains": [{"chainId": str(BASE)}]},
        {"chains": "abc"},
        {"chains": [BASE]},
        [{"chainId": BASE}],
    ])
    async def test_invalid_selection(self, client, services, fetcher, body):
        resp = await client.post("/trigger-oracle-update", json=body)

        assert resp.status_code == 400
        assert "message" in resp.json()
        assert services.updater.snapshot().is_updating is False
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_body(self, client):
        resp = await client.post("/trigger-oracle-update")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_accepts_and_runs_in_background(self, client, publisher):
        resp = await client.post("/trigger-oracle-update", json=selection(SEPOLIA, BASE))

        assert resp.status_code == 202
        assert resp.json() == {"message": "Oracle update triggered!"}

        status = await wait_until_idle(client)
        assert status["currentStep"] == "Idle"
        assert status["chainsQueried"] == ["Ethereum Sepolia", "Base Sepolia"]
        assert status["aiScore"] == 4
        assert status["transactionHash"] == publisher.publish.return_value
        assert re.fullmatch(r"Cycle Complete! New sentiment score is -?\d+\.", status["finalMessage"])

    @pytest.mark.asyncio
    async def test_busy_returns_429(self, client, gated_fetcher, gate):
        first = await client.post("/trigger-oracle-update", json=selection(SEPOLIA, BASE))
        assert first.status_code == 202

        second = await client.post("/trigger-oracle-update", json=selection(MONAD))
        assert second.status_code == 429
        assert second.json() == {"message": "Update already in progress."}

        status = (await client.get("/status")).json()
        assert status["isUpdating"] is True
        assert status["chainsQueried"] == ["Ethereum Sepolia", "Base Sepolia"]

        gate.set()
        status = await wait_until_idle(client)
        assert status["finalMessage"].startswith("Cycle Complete!")
        gated_fetcher.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_cycle_reports_error(self, client, analyzer):
        analyzer.analyze = AsyncMock(side_effect=AnalysisError("AI analysis failed."))

        resp = await client.post("/trigger-oracle-update", json=selection(MONAD))
        assert resp.status_code == 202

        status = await wait_until_idle(client)
        assert status["finalMessage"] == "Error: AI analysis failed.."
        assert status["currentStep"] == "Idle"

        again = await client.post("/trigger-oracle-update", json=selection(MONAD))
        assert again.status_code == 202
        await wait_until_idle(client)


class TestStatus:

    @pytest.mark.asyncio
    async def test_initial_status(self, client):
        resp = await client.get("/status")

        assert resp.status_code == 200
        body = resp.json()
        assert body["isUpdating"] is False
        assert body["currentStep"] == "Idle"
        assert body["finalMessage"] == "Ready to start. Select chains and run analysis."
        assert set(body) >= {
            "isUpdating", "currentStep", "chainsQueried", "rawEventsData",
            "aiSystemPrompt", "aiUserPrompt", "aiRawResponse", "aiScore",
            "transactionHash", "finalMessage",
        }
