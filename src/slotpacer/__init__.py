"""
slotpacer - Slot-synchronized transaction pacing

Spreads a budget of filler transactions over upcoming slots, submitting a
share of it a fixed number of seconds into each slot and tracking which
transactions have landed.

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
        .max_txns_per_slot(8)
        .build()
    )

    runner = Runner.from_config(config)
    summary = await runner.run()
    print(f"{summary.landed}/{summary.total_target} landed")
    await runner.close()
"""

__version__ = "0.1.0"

# Orchestration
from .runner import Runner
from .scheduler import SubmissionScheduler
from .confirmations import ConfirmationTracker

# Components
from .builder import TransactionBuilder, closed_form_gas_limit
from .clock import SlotClock
from .fees import FeeOracle
from .pools import EndpointPool, RoundRobin, SignerPool, SignerState

# Collaborators
from .rpc import JsonRpcTransport
from .signing import LocalSigner

# Configuration
from .config import ConfigBuilder, config_builder, parse_header, parse_signer_keys

# Error types
from .errors import PacerError

# Types - re-export all
from .types import (
    # Config types
    PacerConfig,
    EndpointConfig,
    BuildStrategy,
    GasLimitMode,
    BroadcastFailurePolicy,
    # Chain data
    Network,
    Block,
    Receipt,
    # Scheduling state
    SlotState,
    FeeState,
    Budget,
    # Transactions
    TransactionState,
    UnsignedTransaction,
    SignedPayload,
    PendingTransaction,
    # Results
    RunSummary,
)

__all__ = [
    "__version__",
    "Runner",
    "SubmissionScheduler",
    "ConfirmationTracker",
    "TransactionBuilder",
    "closed_form_gas_limit",
    "SlotClock",
    "FeeOracle",
    "EndpointPool",
    "RoundRobin",
    "SignerPool",
    "SignerState",
    "JsonRpcTransport",
    "LocalSigner",
    "ConfigBuilder",
    "config_builder",
    "parse_header",
    "parse_signer_keys",
    "PacerError",
    "PacerConfig",
    "EndpointConfig",
    "BuildStrategy",
    "GasLimitMode",
    "BroadcastFailurePolicy",
    "Network",
    "Block",
    "Receipt",
    "SlotState",
    "FeeState",
    "Budget",
    "TransactionState",
    "UnsignedTransaction",
    "SignedPayload",
    "PendingTransaction",
    "RunSummary",
]
