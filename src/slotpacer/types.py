"""
slotpacer - Type definitions

Dataclasses and enums shared by the clock, pools, builder, scheduler and
confirmation tracker.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Configuration
# =============================================================================


class BuildStrategy(str, Enum):
    ON_DEMAND = "on_demand"
    PRESIGNED = "presigned"


class GasLimitMode(str, Enum):
    ESTIMATE = "estimate"
    FORMULA = "formula"


class BroadcastFailurePolicy(str, Enum):
    ABORT = "abort"
    SKIP = "skip"


@dataclass
class EndpointConfig:
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class PacerConfig:
    endpoints: List[EndpointConfig]
    signer_keys: List[str]
    genesis_time: int
    slot_duration: int
    slots: int = 10
    delay: int = 4
    txns_per_slot: int = 2
    max_txns_per_slot: int = 8
    size_kb: int = 64
    trim_bytes: int = 256
    recipient: str = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
    fee_multiplier: int = 2
    gas_multiplier: int = 2
    priority_fee: int = 10_000_000_000
    gas_limit_mode: GasLimitMode = GasLimitMode.ESTIMATE
    build_strategy: BuildStrategy = BuildStrategy.ON_DEMAND
    broadcast_failure: BroadcastFailurePolicy = BroadcastFailurePolicy.ABORT
    confirmation_timeout: Optional[float] = None
    polling_interval: float = 4.0
    request_timeout: int = 10_000
    tick_interval: float = 1.0

    @property
    def total_target(self) -> int:
        return self.txns_per_slot * self.slots

    @property
    def payload_size(self) -> int:
        return max(0, self.size_kb * 1024 - self.trim_bytes)


# =============================================================================
# Chain data
# =============================================================================


@dataclass
class Network:
    chain_id: int
    name: str = "unknown"


@dataclass
class Block:
    number: int
    base_fee_per_gas: int = 0
    gas_limit: int = 0
    timestamp: int = 0
    hash: Optional[str] = None


@dataclass
class Receipt:
    transaction_hash: str
    block_number: int
    status: int = 1
    gas_used: int = 0


# =============================================================================
# Scheduling state
# =============================================================================


@dataclass
class SlotState:
    current_slot: int = 0
    seconds_into_slot: int = 0


@dataclass
class FeeState:
    base_fee: int = 0
    last_observed_block: int = -1
    fee_multiplier: int = 2


@dataclass
class Budget:
    """Submission budget for a run.

    ``outstanding_count`` mirrors the length of the confirmation queue and is
    only changed by the tracker.
    """

    total_target: int
    slots_remaining: int
    landed_count: int = 0
    outstanding_count: int = 0
    submitted_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0

    def remaining(self) -> int:
        return max(0, self.total_target - self.landed_count - self.outstanding_count)

    def exhausted(self) -> bool:
        return self.slots_remaining == 0

    def record_submitted(self) -> None:
        self.submitted_count += 1
        self.outstanding_count += 1

    def record_landed(self) -> None:
        self.outstanding_count -= 1
        self.landed_count += 1

    def record_failed(self) -> None:
        self.outstanding_count -= 1
        self.failed_count += 1

    def record_skipped(self) -> None:
        self.skipped_count += 1

    def consume_slot(self) -> None:
        if self.slots_remaining > 0:
            self.slots_remaining -= 1


# =============================================================================
# Transactions
# =============================================================================


class TransactionState(str, Enum):
    IN_FLIGHT = "in_flight"
    LANDED = "landed"
    FAILED = "failed"


@dataclass
class UnsignedTransaction:
    chain_id: int
    nonce: int
    to: str
    data: bytes
    gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    value: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Field mapping accepted by ``eth_account`` for a type-2 transaction."""
        return {
            "type": 2,
            "chainId": self.chain_id,
            "nonce": self.nonce,
            "to": self.to,
            "value": self.value,
            "data": self.data,
            "gas": self.gas,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
        }

    def to_rpc_dict(self, sender: str) -> Dict[str, Any]:
        """JSON-RPC call object, used for ``eth_estimateGas``."""
        return {
            "from": sender,
            "to": self.to,
            "value": hex(self.value),
            "data": "0x" + self.data.hex(),
            "gas": hex(self.gas),
            "maxFeePerGas": hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": hex(self.max_priority_fee_per_gas),
        }


@dataclass
class SignedPayload:
    raw: bytes
    hash: str
    nonce: int
    signer_index: int
    endpoint_index: Optional[int] = None


@dataclass
class PendingTransaction:
    nonce: int
    signer_index: int
    hash: str
    submitted_at_slot: int
    endpoint_index: int = 0
    state: TransactionState = TransactionState.IN_FLIGHT
    block_number: Optional[int] = None
    confirmation: Optional[asyncio.Future] = None

    def is_resolved(self) -> bool:
        return self.confirmation is not None and self.confirmation.done()


# =============================================================================
# Results
# =============================================================================


@dataclass
class RunSummary:
    total_target: int = 0
    submitted: int = 0
    landed: int = 0
    failed: int = 0
    skipped: int = 0
    slots_run: int = 0
    highest_block: int = -1
