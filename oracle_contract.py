import logging
import os
from typing import Optional

from web3 import AsyncHTTPProvider, AsyncWeb3

from errors import PublishError
from models import OracleReading
from utils import short_address

logger = logging.getLogger(__name__)

ORACLE_ABI = [
    {
        "inputs": [
            {"name": "score", "type": "int256"},
            {"name": "summary", "type": "string"},
        ],
        "name": "updateSentiment",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getOracleData",
        "outputs": [
            {"name": "", "type": "int256"},
            {"name": "", "type": "string"},
            {"name": "", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


class OracleContract:
    """Reads and updates the sentiment oracle on the settlement chain (Push Chain)."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        contract_address: Optional[str] = None,
        private_key: Optional[str] = None,
        w3: Optional[AsyncWeb3] = None,
    ):
        self.rpc_url = rpc_url or os.getenv("PUSH_CHAIN_RPC_URL", "")
        self.contract_address = contract_address or os.getenv("ORACLE_CONTRACT_ADDRESS", "")
        self._private_key = private_key or os.getenv("PRIVATE_KEY", "")
        self._w3 = w3

    def _web3(self) -> AsyncWeb3:
        if self._w3 is None:
            if not self.rpc_url:
                raise EnvironmentError("PUSH_CHAIN_RPC_URL is not set.")
            self._w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_url))
        return self._w3

    def _contract(self, w3: AsyncWeb3):
        if not self.contract_address:
            raise EnvironmentError("ORACLE_CONTRACT_ADDRESS is not set.")
        return w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self.contract_address),
            abi=ORACLE_ABI,
        )

    # ── Read ──────────────────────────────────────────────────────────────

    async def get_current_score(self) -> OracleReading:
        w3 = self._web3()
        score, summary, timestamp = await self._contract(w3).functions.getOracleData().call()
        return OracleReading(score=int(score), summary=summary, timestamp=int(timestamp))

    # ── Publish ───────────────────────────────────────────────────────────

    async def publish(self, score: int, summary: str) -> str:
        """Send updateSentiment(score, summary) and wait for it to be mined.

        Returns the 0x-prefixed transaction hash.
        """
        try:
            tx_hash = await self._send_update(score, summary)
        except PublishError:
            raise
        except Exception as e:
            logger.error("PushChain update error: %s", e)
            raise PublishError("Failed to write to PushChain.") from e
        return tx_hash

    async def _send_update(self, score: int, summary: str) -> str:
        if not self._private_key:
            raise EnvironmentError("PRIVATE_KEY is not set.")

        w3 = self._web3()
        account = w3.eth.account.from_key(self._private_key)
        contract = self._contract(w3)

        nonce = await w3.eth.get_transaction_count(account.address)
        tx = await contract.functions.updateSentiment(int(score), summary).build_transaction({
            "from": account.address,
            "nonce": nonce,
            "value": 0,
        })
        signed = account.sign_transaction(tx)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        hex_hash = AsyncWeb3.to_hex(tx_hash)
        logger.info(
            "Submitted score %d to %s (tx: %s)",
            score, short_address(self.contract_address), hex_hash,
        )

        receipt = await w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            raise PublishError(f"Oracle transaction {hex_hash} reverted.")
        return hex_hash
