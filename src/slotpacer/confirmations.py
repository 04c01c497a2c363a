"""
slotpacer - Confirmation tracker

Outstanding submissions are accounted strictly in submission order.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from .display import short_hash
from .types import Budget, PendingTransaction, Receipt, TransactionState

logger = logging.getLogger("slotpacer.confirmations")


class ConfirmationTracker:
    """FIFO queue of in-flight transactions, drained head first.

    ``drain`` stops at the first unresolved entry even if later ones have
    already been included. Nonce/hash attribution relies on that order.
    """

    def __init__(
        self,
        budget: Budget,
        on_block: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._budget = budget
        self._on_block = on_block
        self._queue: Deque[PendingTransaction] = deque()
        self._draining = False
        self._highest_block = -1

    @property
    def outstanding(self) -> int:
        return len(self._queue)

    @property
    def highest_block(self) -> int:
        return self._highest_block

    def pending(self) -> List[PendingTransaction]:
        return list(self._queue)

    def track(self, tx: PendingTransaction) -> None:
        tx.state = TransactionState.IN_FLIGHT
        self._queue.append(tx)
        self._budget.record_submitted()

    def cancel_all(self) -> int:
        """Stop waiting on every outstanding confirmation."""
        cancelled = 0
        for tx in self._queue:
            if tx.confirmation is not None and not tx.confirmation.done():
                tx.confirmation.cancel()
                cancelled += 1
        return cancelled

    def drain(self) -> List[PendingTransaction]:
        """Pop every resolved entry from the head. Returns what was popped."""
        if self._draining:
            return []
        self._draining = True
        resolved: List[PendingTransaction] = []
        try:
            while self._queue and self._queue[0].is_resolved():
                tx = self._queue.popleft()
                self._settle(tx)
                resolved.append(tx)
        finally:
            self._draining = False
        return resolved

    def _settle(self, tx: PendingTransaction) -> None:
        future: asyncio.Future = tx.confirmation  # type: ignore[assignment]

        if future.cancelled():
            error: Optional[BaseException] = asyncio.CancelledError()
        else:
            error = future.exception()

        if error is not None:
            tx.state = TransactionState.FAILED
            self._budget.record_failed()
            logger.warning(
                "%d (%s) was not confirmed: %s",
                tx.nonce, short_hash(tx.hash), error or type(error).__name__,
            )
            return

        receipt: Receipt = future.result()
        tx.state = TransactionState.LANDED
        tx.block_number = receipt.block_number
        self._budget.record_landed()
        logger.info("%d (%s) included in %d", tx.nonce, short_hash(tx.hash), receipt.block_number)
        if receipt.status == 0:
            logger.warning("%d (%s) reverted", tx.nonce, short_hash(tx.hash))

        if receipt.block_number > self._highest_block:
            self._highest_block = receipt.block_number
            if self._on_block:
                self._on_block(receipt.block_number)
