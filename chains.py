import os
from typing import Optional

from models import ChainConfig, ChainInfo


# ── Supported Testnets ────────────────────────────────────────────────────────
# RPC endpoints come from the environment; token contracts are fixed except on
# Monad, where the test token is deployment specific.


def load_supported_chains() -> tuple[ChainConfig, ...]:
    return (
        ChainConfig(
            name="Ethereum Sepolia",
            chain_id=11155111,
            rpc_url=os.getenv("SEPOLIA_RPC_URL"),
            token_address="0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",  # USDC
            token_decimals=6,
        ),
        ChainConfig(
            name="Base Sepolia",
            chain_id=84532,
            rpc_url=os.getenv("BASE_SEPOLIA_RPC_URL"),
            token_address="0x036CbD53842c5426634e7929541eC2318f3dCF7e",  # USDC
            token_decimals=6,
        ),
        ChainConfig(
            name="Monad Testnet",
            chain_id=10143,
            rpc_url=os.getenv("MONAD_TESTNET_RPC_URL"),
            token_address=os.getenv("MONAD_TEST_TOKEN_ADDRESS"),
            token_decimals=18,
        ),
    )


SUPPORTED_CHAINS: tuple[ChainConfig, ...] = load_supported_chains()


class ChainRegistry:
    """Fixed, ordered set of chains keyed by chain id."""

    def __init__(self, chains: tuple[ChainConfig, ...] = SUPPORTED_CHAINS):
        ids = [c.chain_id for c in chains]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate chain id in registry")
        self._chains = tuple(chains)
        self._by_id = {c.chain_id: c for c in self._chains}

    def __iter__(self):
        return iter(self._chains)

    def __len__(self) -> int:
        return len(self._chains)

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._by_id

    def get(self, chain_id: int) -> Optional[ChainConfig]:
        return self._by_id.get(chain_id)

    def public_view(self) -> list[ChainInfo]:
        """Name and id only; RPC URLs and token contracts stay server side."""
        return [ChainInfo(name=c.name, chain_id=c.chain_id) for c in self._chains]
