"""
slotpacer - Submission scheduler

Decides how many transactions each slot gets, then builds, signs and
broadcasts them and hands their confirmations to the tracker.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Deque

from .builder import TransactionBuilder
from .confirmations import ConfirmationTracker
from .display import format_gwei, short_hash
from .errors import PacerError
from .fees import FeeOracle
from .pools import EndpointPool, SignerPool
from .rpc import JsonRpcTransport
from .types import (
    BroadcastFailurePolicy,
    Budget,
    BuildStrategy,
    PacerConfig,
    PendingTransaction,
    Receipt,
    SignedPayload,
)

logger = logging.getLogger("slotpacer.scheduler")


class SubmissionScheduler:
    """Per-slot submission round.

    Volume for a slot is
    ``min(max_txns_per_slot, (target - landed - outstanding) // slots_remaining)``
    so the submitted total converges on the target without overshooting it.
    A round that is still running when the next trigger arrives causes that
    trigger to be dropped.
    """

    def __init__(
        self,
        config: PacerConfig,
        budget: Budget,
        fees: FeeOracle,
        signers: SignerPool,
        endpoints: EndpointPool,
        builder: TransactionBuilder,
        tracker: ConfirmationTracker,
    ) -> None:
        self._budget = budget
        self._fees = fees
        self._signers = signers
        self._endpoints = endpoints
        self._builder = builder
        self._tracker = tracker
        self._strategy = config.build_strategy
        self._max_per_slot = config.max_txns_per_slot
        self._failure_policy = config.broadcast_failure
        self._confirmation_timeout = config.confirmation_timeout
        self._ready: Deque[SignedPayload] = deque()
        self._running = False
        self._dropped_triggers = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ready_count(self) -> int:
        return len(self._ready)

    @property
    def dropped_triggers(self) -> int:
        return self._dropped_triggers

    def compute_to_submit(self) -> int:
        if self._budget.slots_remaining == 0:
            return 0
        wanted = self._budget.remaining() // self._budget.slots_remaining
        to_submit = min(self._max_per_slot, wanted)
        if self._strategy == BuildStrategy.PRESIGNED:
            to_submit = min(to_submit, len(self._ready))
        return max(0, to_submit)

    def presign(self) -> int:
        """Build and sign the whole target batch up front.

        Signer and endpoint assignment is round-robin across the batch, and
        every payload carries the fee cap current at the time of the call.
        """
        fee = self._fees.current_fee()
        for _ in range(self._budget.total_target):
            payload = self._sign_next(fee)
            payload.endpoint_index = self._endpoints.next_index()
            self._ready.append(payload)
        logger.info("Pre-signed %d transactions at fee cap %s gwei", len(self._ready), format_gwei(fee))
        return len(self._ready)

    async def run_slot(self, slot: int) -> int:
        """Run one submission round. Returns the number broadcast."""
        if self._running:
            self._dropped_triggers += 1
            logger.warning("Slot %d: previous round still running, dropping trigger", slot)
            return 0
        if self._budget.exhausted():
            return 0

        self._running = True
        try:
            return await self._submit_round(slot)
        finally:
            self._running = False

    async def _submit_round(self, slot: int) -> int:
        to_submit = self.compute_to_submit()
        fee = self._fees.current_fee()
        logger.info(
            "Slot %d: submitting %d at fee cap %s gwei (%d landed, %d outstanding, %d slots left)",
            slot, to_submit, format_gwei(fee),
            self._budget.landed_count, self._budget.outstanding_count, self._budget.slots_remaining,
        )

        submitted = 0
        for _ in range(to_submit):
            if self._strategy == BuildStrategy.PRESIGNED:
                payload = self._ready.popleft()
                endpoint_index = payload.endpoint_index or 0
            else:
                endpoint_index = self._endpoints.next_index()
                payload = self._sign_next(fee)
                payload.endpoint_index = endpoint_index
            if await self._broadcast(slot, endpoint_index, payload):
                submitted += 1

        self._budget.consume_slot()
        return submitted

    def _sign_next(self, fee: int) -> SignedPayload:
        signer_index, state = self._signers.next()
        nonce = self._signers.allocate(signer_index)
        tx = self._builder.build(fee, nonce, signer_index)
        return state.signer.sign(tx, signer_index)

    async def _broadcast(self, slot: int, endpoint_index: int, payload: SignedPayload) -> bool:
        transport = self._endpoints[endpoint_index]
        try:
            tx_hash = await transport.broadcast_transaction(payload.raw)
        except Exception as e:
            if self._failure_policy == BroadcastFailurePolicy.ABORT:
                raise PacerError.broadcast(
                    f"nonce {payload.nonce} from signer {payload.signer_index} "
                    f"rejected by endpoint {endpoint_index}: {e}",
                    payload.nonce,
                ) from e
            self._budget.record_skipped()
            logger.warning(
                "Skipping nonce %d from signer %d, broadcast via endpoint %d failed: %s",
                payload.nonce, payload.signer_index, endpoint_index, e,
            )
            return False

        tx_hash = tx_hash or payload.hash
        logger.info("Submitted %d as %s", payload.nonce, short_hash(tx_hash))

        pending = PendingTransaction(
            nonce=payload.nonce,
            signer_index=payload.signer_index,
            hash=tx_hash,
            submitted_at_slot=slot,
            endpoint_index=endpoint_index,
        )
        pending.confirmation = asyncio.ensure_future(self._confirm(transport, tx_hash))
        self._tracker.track(pending)
        return True

    async def _confirm(self, transport: JsonRpcTransport, tx_hash: str) -> Receipt:
        if self._confirmation_timeout is None:
            return await transport.wait_for_receipt(tx_hash)
        try:
            return await asyncio.wait_for(
                transport.wait_for_receipt(tx_hash), self._confirmation_timeout
            )
        except asyncio.TimeoutError as e:
            raise PacerError.timeout(self._confirmation_timeout) from e
