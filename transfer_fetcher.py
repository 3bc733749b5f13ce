import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3

from chains import ChainRegistry
from models import ChainConfig, ChainSelection, FetchResult, TransferEvent
from utils import format_units, short_address

logger = logging.getLogger(__name__)

BLOCK_WINDOW = 100
DEFAULT_DECIMALS = 6
NO_ACTIVITY_SUMMARY = "No recent transfer activity observed on selected chains."

TRANSFER_EVENT_ABI = [{
    "anonymous": False,
    "inputs": [
        {"indexed": True, "name": "from", "type": "address"},
        {"indexed": True, "name": "to", "type": "address"},
        {"indexed": False, "name": "value", "type": "uint256"},
    ],
    "name": "Transfer",
    "type": "event",
}]


@dataclass(frozen=True)
class ChainOutcome:
    """Result of sampling one chain: raw transfer amounts, or degraded-empty."""

    chain: str
    decimals: int
    values: tuple[int, ...] = ()
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(cls, chain: str, error: str) -> "ChainOutcome":
        return cls(chain=chain, decimals=DEFAULT_DECIMALS, error=error)


@dataclass
class _ChainClient:
    w3: AsyncWeb3
    contract: object


class TransferFetcher:
    """Samples recent ERC-20 Transfer events across registry chains."""

    def __init__(self, registry: ChainRegistry, block_window: int = BLOCK_WINDOW):
        self.registry = registry
        self.block_window = block_window
        self._clients: dict[int, _ChainClient] = {}

    async def fetch(self, chains: Iterable[ChainSelection]) -> FetchResult:
        chains = list(chains)
        logger.info("Fetching data from %d chain(s)", len(chains))

        outcomes = await asyncio.gather(*(self._sample_chain(c) for c in chains))
        degraded = [o.chain for o in outcomes if o.degraded]
        if degraded:
            logger.warning(
                "%d of %d chain(s) returned no data: %s",
                len(degraded), len(outcomes), ", ".join(degraded),
            )
        return summarize(outcomes)

    async def _sample_chain(self, selection: ChainSelection) -> ChainOutcome:
        cfg = self.registry.get(selection.chain_id)
        if cfg is None:
            logger.warning("Chain %s not supported", selection.chain_id)
            label = selection.name or str(selection.chain_id)
            return ChainOutcome.failed(label, "unsupported chain")

        try:
            values = await self._fetch_transfer_values(cfg)
        except Exception as e:
            logger.warning("Failed to fetch from %s: %s", cfg.name, e)
            return ChainOutcome.failed(cfg.name, str(e))

        logger.debug("%s: %d transfer(s)", cfg.name, len(values))
        return ChainOutcome(chain=cfg.name, decimals=cfg.token_decimals, values=tuple(values))

    # ── web3 ───────────────────────────────────────────────────────────────

    def _client(self, cfg: ChainConfig) -> _ChainClient:
        client = self._clients.get(cfg.chain_id)
        if client is None:
            if not cfg.rpc_url:
                raise EnvironmentError(f"No RPC endpoint configured for {cfg.name}")
            if not cfg.token_address:
                raise EnvironmentError(f"No token contract configured for {cfg.name}")
            w3 = AsyncWeb3(AsyncHTTPProvider(cfg.rpc_url))
            contract = w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(cfg.token_address),
                abi=TRANSFER_EVENT_ABI,
            )
            client = _ChainClient(w3=w3, contract=contract)
            self._clients[cfg.chain_id] = client
            logger.debug(
                "Connected %s token %s", cfg.name, short_address(cfg.token_address)
            )
        return client

    async def _fetch_transfer_values(self, cfg: ChainConfig) -> list[int]:
        client = self._client(cfg)
        head = await client.w3.eth.block_number
        logs = await client.contract.events.Transfer.get_logs(
            from_block=max(head - self.block_window, 0),
            to_block=head,
        )
        return [int(log["args"]["value"]) for log in logs]


def summarize(outcomes: Iterable[ChainOutcome]) -> FetchResult:
    """Merge per-chain outcomes into one summary plus per-event records.

    The total adds raw amounts from different tokens and scales them by
    DEFAULT_DECIMALS, so it is only an approximate activity indicator.
    """
    events: list[TransferEvent] = []
    total = 0
    for outcome in outcomes:
        for value in outcome.values:
            total += value
            events.append(TransferEvent(
                chain=outcome.chain,
                value=format_units(value, outcome.decimals),
            ))

    if not events:
        return FetchResult(summary=NO_ACTIVITY_SUMMARY, raw_events=())

    summary = (
        f"Found {len(events)} total transfers across selected chains. "
        f"Total value: {format_units(total, DEFAULT_DECIMALS)} "
        f"(approximate, aggregated across different tokens/chains)."
    )
    return FetchResult(summary=summary, raw_events=tuple(events))
