"""Shared fakes for the slotpacer tests: a controllable clock and chain."""

import asyncio
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from eth_utils import keccak

from slotpacer.clock import SlotClock
from slotpacer.errors import PacerError
from slotpacer.pools import EndpointPool, SignerPool
from slotpacer.runner import Runner
from slotpacer.signing import LocalSigner
from slotpacer.types import Block, EndpointConfig, GasLimitMode, Network, PacerConfig, Receipt

# Foundry/Anvil dev accounts. Never funded outside local chains.
DEV_KEYS = [
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
]

GWEI = 10**9
SLOT = 12
START = 100 * SLOT  # slot 100, offset 0


class FakeClock:
    """Manually advanced time source with an async sleep that advances it."""

    def __init__(self, now: float = START) -> None:
        self.now = now
        self._listeners: List[Callable[[], None]] = []

    def __call__(self) -> float:
        return self.now

    def on_advance(self, cb: Callable[[], None]) -> None:
        self._listeners.append(cb)

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for cb in self._listeners:
            cb()

    async def sleep(self, seconds: float) -> None:
        self.advance(seconds)
        await settle()


async def settle(rounds: int = 20) -> None:
    """Let spawned tasks run to their next real suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeChain:
    """In-memory chain: one block per slot, receipts after a fixed delay."""

    def __init__(
        self,
        clock: FakeClock,
        confirm_after: Optional[float] = 2 * SLOT,
        chain_id: int = 1337,
        base_fee: Callable[[int], int] = lambda n: GWEI,
    ) -> None:
        self.clock = clock
        self.confirm_after = confirm_after
        self.chain_id = chain_id
        self.base_fee = base_fee
        self.nonces: Dict[str, int] = {}
        self.balances: Dict[str, int] = {}
        self.broadcasts: List[Tuple[str, bytes, str]] = []
        self.reject: Callable[[int], bool] = lambda index: False
        self.gas_estimate = 50_000
        self.block_fetches: List[int] = []
        self._waiters: List[Tuple[float, str, asyncio.Future]] = []
        clock.on_advance(self.mine)

    @property
    def head(self) -> int:
        return int(self.clock.now) // SLOT

    def block(self, number: int) -> Block:
        return Block(number=number, base_fee_per_gas=self.base_fee(number), gas_limit=30_000_000)

    def mine(self) -> None:
        still_waiting = []
        for due, tx_hash, fut in self._waiters:
            if fut.done():
                continue
            if due <= self.clock.now:
                fut.set_result(Receipt(transaction_hash=tx_hash, block_number=self.head))
            else:
                still_waiting.append((due, tx_hash, fut))
        self._waiters = still_waiting

    def wait(self, tx_hash: str) -> asyncio.Future:
        fut = asyncio.get_running_loop().create_future()
        if self.confirm_after is not None:
            self._waiters.append((self.clock.now + self.confirm_after, tx_hash, fut))
        return fut


class FakeTransport:
    """Implements the transport interface on top of a FakeChain."""

    def __init__(self, chain: FakeChain, url: str = "http://fake:8545") -> None:
        self.chain = chain
        self.url = url
        self.closed = False

    async def get_network(self):
        return Network(chain_id=self.chain.chain_id, name="devnet")

    async def get_block_number(self) -> int:
        return self.chain.head

    async def get_block(self, number="latest") -> Block:
        n = self.chain.head if number == "latest" else number
        self.chain.block_fetches.append(n)
        return self.chain.block(n)

    async def get_nonce(self, address: str) -> int:
        return self.chain.nonces.get(address, 0)

    async def get_balance(self, address: str) -> int:
        return self.chain.balances.get(address, 10**18)

    async def estimate_gas(self, tx) -> int:
        return self.chain.gas_estimate

    async def broadcast_transaction(self, raw: bytes) -> str:
        index = len(self.chain.broadcasts)
        tx_hash = "0x" + keccak(raw).hex()
        self.chain.broadcasts.append((self.url, raw, tx_hash))
        if self.chain.reject(index):
            raise PacerError.rpc("nonce too low", -32000)
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        return await self.chain.wait(tx_hash)

    async def close(self) -> None:
        self.closed = True


def make_config(**overrides) -> PacerConfig:
    config = PacerConfig(
        endpoints=[EndpointConfig(url="http://fake:8545")],
        signer_keys=[DEV_KEYS[0]],
        genesis_time=0,
        slot_duration=SLOT,
        slots=10,
        delay=3,
        txns_per_slot=2,
        max_txns_per_slot=8,
        size_kb=1,
        trim_bytes=0,
        gas_limit_mode=GasLimitMode.FORMULA,
        polling_interval=4.0,
    )
    return replace(config, **overrides)


def make_runner(config: PacerConfig, clock: FakeClock, chain: FakeChain, endpoints: int = 1) -> Runner:
    transports = [FakeTransport(chain, url=f"http://fake-{i}:8545") for i in range(endpoints)]
    signers = [LocalSigner(k) for k in config.signer_keys]
    return Runner(
        config,
        EndpointPool(transports),
        SignerPool(signers),
        clock=SlotClock(config.genesis_time, config.slot_duration, config.delay, time_fn=clock),
        sleep=clock.sleep,
        payload_fn=lambda n: b"\x01" * n,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chain(clock: FakeClock) -> FakeChain:
    return FakeChain(clock)
