"""
slotpacer - Runner

Drives the one-second tick loop until the budget is spent and every
submission has resolved.

Example::

    from slotpacer import Runner, config_builder

    config = (
        config_builder()
        .endpoint("http://localhost:8545")
        .signer(private_key)
        .genesis_time(1606824023)
        .slot_duration(12)
        .slots(10)
        .txns_per_slot(2)
        .build()
    )

    runner = Runner.from_config(config)
    try:
        summary = await runner.run()
    finally:
        await runner.close()
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set

from .builder import TransactionBuilder
from .clock import SlotClock
from .confirmations import ConfirmationTracker
from .errors import PacerError
from .fees import FeeOracle
from .pools import EndpointPool, SignerPool
from .rpc import JsonRpcTransport
from .scheduler import SubmissionScheduler
from .signing import LocalSigner
from .types import Block, Budget, BuildStrategy, Network, PacerConfig, RunSummary

logger = logging.getLogger("slotpacer.runner")

Sleep = Callable[[float], Awaitable[Any]]


class Runner:
    """Owns the run state and the tick loop.

    Use :meth:`from_config` to build one with real transports and signers,
    then :meth:`run`. Tests inject pools, a clock and a sleep function.
    """

    def __init__(
        self,
        config: PacerConfig,
        endpoints: EndpointPool,
        signers: SignerPool,
        clock: Optional[SlotClock] = None,
        sleep: Sleep = asyncio.sleep,
        payload_fn: Callable[[int], bytes] = os.urandom,
    ) -> None:
        self._config = config
        self._endpoints = endpoints
        self._signers = signers
        self._clock = clock or SlotClock(config.genesis_time, config.slot_duration, config.delay)
        self._sleep = sleep
        self._payload_fn = payload_fn

        self.budget = Budget(total_target=config.total_target, slots_remaining=config.slots)
        self.fees = FeeOracle(config.fee_multiplier, config.priority_fee)
        self.tracker = ConfirmationTracker(self.budget, on_block=self._observe_block)
        self.network: Optional[Network] = None
        self.builder: Optional[TransactionBuilder] = None
        self.scheduler: Optional[SubmissionScheduler] = None

        self._highest_block = -1
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._poll_task: Optional[asyncio.Task[None]] = None
        self._last_poll: Optional[float] = None
        self._started = False
        self._halted = False

    @classmethod
    def from_config(cls, config: PacerConfig, **kwargs: Any) -> Runner:
        """Create transports and signers from config. Bad keys fail here, before any I/O."""
        signers = SignerPool([LocalSigner(k) for k in config.signer_keys])
        endpoints = EndpointPool(
            [
                JsonRpcTransport(e.url, e.headers, config.request_timeout, config.polling_interval)
                for e in config.endpoints
            ]
        )
        return cls(config, endpoints, signers, **kwargs)

    @property
    def clock(self) -> SlotClock:
        return self._clock

    @property
    def highest_block(self) -> int:
        return self._highest_block

    @property
    def halted(self) -> bool:
        return self._halted

    # =========================================================================
    # Startup
    # =========================================================================

    async def start(self) -> None:
        """One-time blocking startup sequence."""
        transport = self._endpoints[0]

        logger.info("Awaiting network...")
        self.network = await transport.get_network()
        logger.info("Got %s (chain id %d)", self.network.name, self.network.chain_id)

        await self._signers.initialize(transport)

        latest = await transport.get_block("latest")
        self._observe_block(latest.number)
        self.fees.apply_block(latest)

        self.builder = TransactionBuilder(
            chain_id=self.network.chain_id,
            recipient=self._config.recipient,
            priority_fee=self._config.priority_fee,
            payload_size=self._config.payload_size,
            payload_fn=self._payload_fn,
        )
        await self.builder.resolve_gas_limit(
            self._config.gas_limit_mode,
            self._config.gas_multiplier,
            transport,
            self._signers[0].address,
            self.fees.current_fee(),
            latest.gas_limit,
        )

        self.scheduler = SubmissionScheduler(
            self._config,
            self.budget,
            self.fees,
            self._signers,
            self._endpoints,
            self.builder,
            self.tracker,
        )
        if self._config.build_strategy == BuildStrategy.PRESIGNED:
            self.scheduler.presign()

        logger.info(
            "Targeting %d transactions over %d slots (%d per slot, max %d) with %d signer(s), %d endpoint(s)",
            self.budget.total_target, self._config.slots, self._config.txns_per_slot,
            self._config.max_txns_per_slot, self._signers.size(), self._endpoints.size(),
        )
        self._started = True

    # =========================================================================
    # Tick loop
    # =========================================================================

    async def run(self) -> RunSummary:
        if not self._started:
            await self.start()
        try:
            while not await self.tick():
                await self._sleep(self._clock.seconds_until_next_tick(self._config.tick_interval))
        finally:
            await self.shutdown()

        summary = self.summary()
        logger.info(
            "Done: %d/%d landed (%d failed, %d skipped) over %d slots, highest block %d",
            summary.landed, summary.total_target, summary.failed, summary.skipped,
            summary.slots_run, summary.highest_block,
        )
        return summary

    async def tick(self) -> bool:
        """Run one tick. Returns True once the run has halted."""
        if not self._started or self.scheduler is None:
            raise PacerError.internal("runner has not been started")

        self._reap()
        state = self._clock.tick()
        self.tracker.drain()
        self._maybe_poll_head()
        self.fees.observe(self._highest_block, self._fetch_block)

        if self._clock.should_trigger(state) and not self.budget.exhausted():
            # With no delay the trigger is the last second of the previous slot.
            target_slot = state.current_slot + 1 if self._config.delay == 0 else state.current_slot
            self._spawn(self.scheduler.run_slot(target_slot))

        self._halted = self.is_done()
        return self._halted

    def is_done(self) -> bool:
        running = self.scheduler is not None and self.scheduler.running
        return self.budget.exhausted() and self.tracker.outstanding == 0 and not running

    def summary(self) -> RunSummary:
        return RunSummary(
            total_target=self.budget.total_target,
            submitted=self.budget.submitted_count,
            landed=self.budget.landed_count,
            failed=self.budget.failed_count,
            skipped=self.budget.skipped_count,
            slots_run=self._config.slots - self.budget.slots_remaining,
            highest_block=self._highest_block,
        )

    async def shutdown(self) -> None:
        """Cancel background work and outstanding confirmation waits."""
        self.tracker.cancel_all()
        self.fees.cancel()
        pending = [t for t in self._tasks if not t.done()]
        if self._poll_task and not self._poll_task.done():
            pending.append(self._poll_task)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    async def close(self) -> None:
        await self._endpoints.close()

    # =========================================================================
    # Internal
    # =========================================================================

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        return task

    def _reap(self) -> None:
        """Forget finished tasks, re-raising the first failure."""
        for task in [t for t in self._tasks if t.done()]:
            self._tasks.discard(task)
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]

    def _observe_block(self, number: int) -> None:
        if number > self._highest_block:
            self._highest_block = number
            logger.debug("Got block %d", number)

    def _maybe_poll_head(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            return
        now = self._clock.time()
        if self._last_poll is not None and now - self._last_poll < self._config.polling_interval:
            return
        self._last_poll = now
        self._poll_task = asyncio.ensure_future(self._poll_head())

    async def _poll_head(self) -> None:
        index, transport = self._endpoints.next()
        try:
            number = await transport.get_block_number()
        except Exception as e:
            logger.warning("Block number poll via endpoint %d failed: %s", index, e)
            return
        self._observe_block(number)

    async def _fetch_block(self, number: int) -> Block:
        _, transport = self._endpoints.next()
        return await transport.get_block(number)
