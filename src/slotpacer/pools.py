"""
slotpacer - Signer and endpoint pools

Both pools hand out members round-robin, each on its own counter.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Generic, List, Sequence, Tuple, TypeVar

from .display import format_ether
from .errors import PacerError
from .rpc import JsonRpcTransport
from .signing import LocalSigner

logger = logging.getLogger("slotpacer.pools")

T = TypeVar("T")


class RoundRobin(Generic[T]):
    """Cyclic selector: index ``calls mod size``."""

    def __init__(self, items: Sequence[T]) -> None:
        if not items:
            raise PacerError.config("pool must contain at least one member")
        self._items: List[T] = list(items)
        self._calls = 0

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    @property
    def items(self) -> List[T]:
        return list(self._items)

    def next_index(self) -> int:
        index = self._calls % len(self._items)
        self._calls += 1
        return index

    def next(self) -> Tuple[int, T]:
        index = self.next_index()
        return index, self._items[index]


class EndpointPool(RoundRobin[JsonRpcTransport]):
    """Round-robin over RPC endpoints. No health checks or fallback."""

    async def close(self) -> None:
        await asyncio.gather(*(t.close() for t in self._items), return_exceptions=True)


@dataclass
class SignerState:
    signer: LocalSigner
    next_nonce: int = 0
    address: str = ""

    def __post_init__(self) -> None:
        if not self.address:
            self.address = self.signer.address


class SignerPool(RoundRobin[SignerState]):
    """Signer identities with independent, strictly increasing nonces."""

    def __init__(self, signers: Sequence[LocalSigner]) -> None:
        super().__init__([SignerState(signer=s) for s in signers])

    async def initialize(self, transport: JsonRpcTransport) -> None:
        """Seed every nonce from the chain. Done once, before the run starts."""
        for index, state in enumerate(self._items):
            state.next_nonce = await transport.get_nonce(state.address)
            balance = await transport.get_balance(state.address)
            logger.info(
                "Using signer %d %s (nonce %d, balance %s ETH)",
                index, state.address, state.next_nonce, format_ether(balance),
            )

    def allocate(self, signer_index: int) -> int:
        """Return the next nonce for a signer and advance it. Never reused."""
        state = self._items[signer_index]
        nonce = state.next_nonce
        state.next_nonce += 1
        return nonce

    def nonces(self) -> List[int]:
        return [s.next_nonce for s in self._items]
