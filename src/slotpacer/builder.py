"""
slotpacer - Transaction builder

Produces the unsigned filler transactions. Everything except fee and nonce
is fixed for the run, including the gas limit, which is resolved once.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from .errors import PacerError
from .rpc import JsonRpcTransport
from .types import GasLimitMode, UnsignedTransaction

logger = logging.getLogger("slotpacer.builder")

INTRINSIC_GAS = 21_000
CALLDATA_GAS_PER_BYTE = 16
GAS_HEADROOM = 10_000


def closed_form_gas_limit(payload_bytes: int) -> int:
    """Upper bound for a plain call carrying ``payload_bytes`` of calldata."""
    return INTRINSIC_GAS + CALLDATA_GAS_PER_BYTE * payload_bytes + GAS_HEADROOM


class TransactionBuilder:
    def __init__(
        self,
        chain_id: int,
        recipient: str,
        priority_fee: int,
        payload_size: int,
        gas_limit: Optional[int] = None,
        payload_fn: Callable[[int], bytes] = os.urandom,
    ) -> None:
        self._chain_id = chain_id
        self._recipient = recipient
        self._priority_fee = priority_fee
        self._payload_size = payload_size
        self._gas_limit = gas_limit
        self._payload_fn = payload_fn

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def payload_size(self) -> int:
        return self._payload_size

    @property
    def gas_limit(self) -> Optional[int]:
        return self._gas_limit

    async def resolve_gas_limit(
        self,
        mode: GasLimitMode,
        multiplier: int = 1,
        transport: Optional[JsonRpcTransport] = None,
        sender: Optional[str] = None,
        fee: int = 0,
        block_gas_limit: int = 0,
    ) -> int:
        """Fix the gas limit for the run.

        ``FORMULA`` uses :func:`closed_form_gas_limit`. ``ESTIMATE`` asks the
        node once, seeding the call with the block gas limit, and scales the
        answer by ``multiplier``. The payload shape never changes, so the
        result is reused for every transaction.
        """
        if self._gas_limit is not None:
            return self._gas_limit

        if mode == GasLimitMode.FORMULA:
            self._gas_limit = closed_form_gas_limit(self._payload_size)
        else:
            if transport is None or sender is None:
                raise PacerError.internal("gas estimation needs a transport and sender")
            probe = self._assemble(fee, 0, block_gas_limit or closed_form_gas_limit(self._payload_size))
            estimate = await transport.estimate_gas(probe.to_rpc_dict(sender))
            self._gas_limit = estimate * multiplier

        logger.info("Gas limit %d (%s, %d payload bytes)", self._gas_limit, mode.value, self._payload_size)
        return self._gas_limit

    def build(self, fee: int, nonce: int, signer_index: int = 0) -> UnsignedTransaction:
        if self._gas_limit is None:
            raise PacerError.internal("gas limit has not been resolved")
        tx = self._assemble(fee, nonce, self._gas_limit)
        logger.debug("Built nonce %d for signer %d", nonce, signer_index)
        return tx

    def _assemble(self, fee: int, nonce: int, gas: int) -> UnsignedTransaction:
        return UnsignedTransaction(
            chain_id=self._chain_id,
            nonce=nonce,
            to=self._recipient,
            data=self._payload_fn(self._payload_size),
            gas=gas,
            max_fee_per_gas=max(fee, self._priority_fee),
            max_priority_fee_per_gas=self._priority_fee,
        )
