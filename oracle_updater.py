import asyncio
import logging
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from chains import ChainRegistry
from errors import AnalysisError, BusyError, SelectionError
from models import IDLE_STEP, ChainSelection, OracleState
from prompts import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger(__name__)

MIN_CHAINS = 1
MAX_CHAINS = 5


def validate_selection(chains: Any, registry: ChainRegistry) -> list[ChainSelection]:
    """Turn a requested chain list (selections or raw JSON entries) into selections.

    Anything other than 1 to 5 well-formed entries from the registry raises
    SelectionError.
    """
    if not isinstance(chains, (list, tuple)) or not MIN_CHAINS <= len(chains) <= MAX_CHAINS:
        raise SelectionError(
            f"Invalid selection. Please select between {MIN_CHAINS} and {MAX_CHAINS} chains."
        )
    try:
        selection = [ChainSelection.model_validate(c) for c in chains]
    except ValidationError as e:
        raise SelectionError("One or more selected chains are not supported.") from e
    if not all(c.chain_id in registry for c in selection):
        raise SelectionError("One or more selected chains are not supported.")
    return selection


class OracleUpdater:
    """Runs fetch -> analyze -> publish cycles, one at a time.

    The updater is the only writer of its status record. A cycle replaces the
    record wholesale when it starts; readers get copies via snapshot().
    """

    def __init__(self, registry: ChainRegistry, fetcher, analyzer, publisher):
        self.registry = registry
        self.fetcher = fetcher
        self.analyzer = analyzer
        self.publisher = publisher
        self._state = OracleState()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_updating(self) -> bool:
        return self._state.is_updating

    def snapshot(self) -> OracleState:
        return self._state.model_copy(deep=True)

    # ── Scheduling ────────────────────────────────────────────────────────

    def start(self, chains: Sequence[ChainSelection]) -> asyncio.Task:
        """Begin a cycle in the background; raises BusyError if one is running."""
        if self.is_updating:
            raise BusyError("Update already in progress.")
        loop = asyncio.get_running_loop()
        self._begin(chains)
        self._task = loop.create_task(self._run_cycle(chains))
        return self._task

    async def run(self, chains: Sequence[ChainSelection]) -> None:
        """Run a cycle to completion. Ignored while another cycle is running."""
        if self.is_updating:
            return
        self._begin(chains)
        await self._run_cycle(chains)

    def _chain_label(self, selection: ChainSelection) -> str:
        cfg = self.registry.get(selection.chain_id)
        if cfg:
            return cfg.name
        return selection.name or str(selection.chain_id)

    def _begin(self, chains: Sequence[ChainSelection]) -> None:
        self._state = OracleState(
            is_updating=True,
            current_step="Starting...",
            chains_queried=[self._chain_label(c) for c in chains],
            final_message=None,
        )

    # ── Cycle ─────────────────────────────────────────────────────────────

    async def _run_cycle(self, chains: Sequence[ChainSelection]) -> None:
        state = self._state
        try:
            state.current_step = f"1/3: Fetching data from {len(chains)} chain(s)..."
            logger.info(state.current_step)
            fetched = await self.fetcher.fetch(chains)
            state.fetched_data_summary = fetched.summary
            state.raw_events_data = list(fetched.raw_events)

            state.current_step = "2/3: Analyzing sentiment with AI..."
            logger.info(state.current_step)
            user_prompt = build_user_prompt(fetched.summary)
            state.ai_system_prompt = SYSTEM_PROMPT
            state.ai_user_prompt = user_prompt
            if self.analyzer is None:
                raise AnalysisError("AI provider is not configured.")
            sentiment = await self.analyzer.analyze(SYSTEM_PROMPT, user_prompt)
            state.ai_score = sentiment.score
            state.ai_raw_response = sentiment.raw_response

            state.current_step = "3/3: Broadcasting score to PushChain..."
            logger.info(state.current_step)
            state.transaction_hash = await self.publisher.publish(
                sentiment.score, fetched.summary
            )

            state.final_message = f"Cycle Complete! New sentiment score is {sentiment.score}."
            logger.info(state.final_message)
        except Exception as e:
            logger.exception("Oracle update failed")
            state.final_message = f"Error: {e}."
        finally:
            state.current_step = IDLE_STEP
            state.is_updating = False
