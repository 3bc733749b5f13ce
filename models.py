from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


# ── Registry ──────────────────────────────────────────────────────────────────


class ChainConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    chain_id: int
    rpc_url: Optional[str] = None
    token_address: Optional[str] = None
    token_decimals: int = 18


# ── Pipeline Data ─────────────────────────────────────────────────────────────


class TransferEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    chain: str
    value: str  # decimal string, already adjusted for token decimals


class FetchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    raw_events: tuple[TransferEvent, ...] = ()


class SentimentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=-10, le=10)
    raw_response: str


class OracleReading(BaseModel):
    score: int
    summary: str
    timestamp: int


# ── Status Record ─────────────────────────────────────────────────────────────


IDLE_STEP = "Idle"
READY_MESSAGE = "Ready to start. Select chains and run analysis."


class OracleState(BaseModel):
    """Progress of the current (or last) update cycle, serialized in camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    is_updating: bool = Field(False, alias="isUpdating")
    current_step: str = Field(IDLE_STEP, alias="currentStep")
    chains_queried: Optional[list[str]] = Field(None, alias="chainsQueried")
    fetched_data_summary: Optional[str] = Field(None, alias="fetchedDataSummary")
    raw_events_data: Optional[list[TransferEvent]] = Field(None, alias="rawEventsData")
    ai_system_prompt: Optional[str] = Field(None, alias="aiSystemPrompt")
    ai_user_prompt: Optional[str] = Field(None, alias="aiUserPrompt")
    ai_raw_response: Optional[str] = Field(None, alias="aiRawResponse")
    ai_score: Optional[int] = Field(None, alias="aiScore")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    final_message: Optional[str] = Field(READY_MESSAGE, alias="finalMessage")


# ── API Models ────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str


class ChainInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    chain_id: int = Field(..., alias="chainId")


class ChainSelection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # "84532" is not a chain id
    chain_id: StrictInt = Field(..., alias="chainId")
    name: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
