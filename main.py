import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastmcp import FastMCP

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("omnimood")

from agent import SentimentAgent
from chains import ChainRegistry
from errors import BusyError, SelectionError
from models import (
    ChainInfo, ChainSelection, HealthResponse, MessageResponse,
)
from oracle_contract import OracleContract
from oracle_updater import OracleUpdater, validate_selection
from transfer_fetcher import TransferFetcher

VERSION = "1.0.0"
SCORE_READ_ERROR = "Failed to fetch data from PushChain contract."


# ── Services ──────────────────────────────────────────────────────────────────

registry = ChainRegistry()
oracle: OracleContract | None = None
updater: OracleUpdater | None = None


def build_updater(contract: OracleContract) -> OracleUpdater:
    try:
        agent = SentimentAgent()
    except Exception as e:
        logger.warning("AI analysis disabled: %s", e)
        agent = None
    return OracleUpdater(registry, TransferFetcher(registry), agent, contract)


def trigger(chains: Any) -> None:
    """Validate a selection and hand it to the updater; raises on rejection."""
    selection = validate_selection(chains, registry)
    updater.start(selection)


# ── MCP Server (mounted at /mcp) ─────────────────────────────────────────────

mcp = FastMCP(
    name="OmniMood Oracle",
    instructions=(
        "Samples recent token transfers on Ethereum Sepolia, Base Sepolia and Monad "
        "testnet, scores market sentiment from -10 to 10 with a language model and "
        "publishes the score to an oracle contract on Push Chain."
    ),
)


@mcp.tool()
def list_chains() -> list[dict]:
    """List the chains that can be sampled (name and chainId)."""
    return [c.model_dump(by_alias=True) for c in registry.public_view()]


@mcp.tool()
async def oracle_status() -> dict:
    """Progress of the running (or last) oracle update cycle."""
    return updater.snapshot().model_dump(by_alias=True, mode="json")


@mcp.tool()
async def current_score() -> dict:
    """Score, summary and timestamp currently stored in the oracle contract."""
    reading = await oracle.get_current_score()
    return reading.model_dump()


@mcp.tool()
async def trigger_update(chain_ids: list[int]) -> dict:
    """
    Start an oracle update cycle.

    Args:
        chain_ids: 1 to 5 chain ids taken from list_chains.

    Returns:
        Whether the cycle was started, with a message. Poll oracle_status for progress.
    """
    try:
        trigger([ChainSelection(chain_id=i) for i in chain_ids])
    except (SelectionError, BusyError) as e:
        return {"accepted": False, "message": str(e)}
    return {"accepted": True, "message": "Oracle update triggered!"}


mcp_app = mcp.http_app()


# ── Lifespan ──────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    global oracle, updater
    oracle = OracleContract()
    updater = build_updater(oracle)
    logger.info("Supported chains: %s", ", ".join(c.name for c in registry))
    async with mcp_app.lifespan(app):
        logger.info("OmniMood Oracle ready")
        yield
    logger.info("Shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="OmniMood Oracle",
    description=(
        "Cross-chain sentiment oracle. Samples recent token transfers on selected "
        "testnets, asks a language model for a -10..10 sentiment score and writes it "
        "to an oracle contract on Push Chain.\n\n"
        "Exposes **REST** and **MCP** (`/mcp`) endpoints."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/mcp", mcp_app)


# ── Info ──────────────────────────────────────────────────────────────────────


@app.get("/health", response_model=HealthResponse, tags=["Info"])
def health():
    return HealthResponse(status="ok", version=VERSION)


@app.get("/get-chains", response_model=list[ChainInfo], tags=["Oracle"])
def get_chains():
    return registry.public_view()


# ── Oracle ────────────────────────────────────────────────────────────────────


@app.get("/get-current-score", tags=["Oracle"])
async def get_current_score():
    try:
        reading = await oracle.get_current_score()
    except Exception:
        logger.exception("Error fetching from PushChain contract")
        return JSONResponse(status_code=500, content={"error": SCORE_READ_ERROR})
    return reading.model_dump()


@app.post(
    "/trigger-oracle-update",
    status_code=202,
    response_model=MessageResponse,
    tags=["Oracle"],
)
async def trigger_oracle_update(
    payload: Any = Body(
        None,
        examples=[{"chains": [{"chainId": 84532, "name": "Base Sepolia"}]}],
    ),
):
    """
    Start an update cycle over 1 to 5 chains from `/get-chains`.

    Returns immediately; poll `/status` for progress.
    """
    try:
        trigger(payload.get("chains") if isinstance(payload, dict) else None)
    except SelectionError as e:
        return JSONResponse(status_code=400, content={"message": str(e)})
    except BusyError as e:
        return JSONResponse(status_code=429, content={"message": str(e)})
    return MessageResponse(message="Oracle update triggered!")


@app.get("/status", tags=["Oracle"])
async def status():
    return updater.snapshot().model_dump(by_alias=True, mode="json")


# ── Frontend ──────────────────────────────────────────────────────────────────

_frontend = Path(os.getenv("FRONTEND_DIR", "public"))
if _frontend.is_dir():
    app.mount("/", StaticFiles(directory=_frontend, html=True), name="frontend")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        reload=os.getenv("APP_ENV", "development") == "development",
    )
