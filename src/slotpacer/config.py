"""
slotpacer - Configuration builder
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from eth_utils import is_address, to_checksum_address

from .errors import PacerError
from .types import (
    BroadcastFailurePolicy,
    BuildStrategy,
    EndpointConfig,
    GasLimitMode,
    PacerConfig,
)


class ConfigBuilder:
    """Fluent configuration builder for a pacing run."""

    def __init__(self) -> None:
        self._endpoints: List[EndpointConfig] = []
        self._headers: Dict[str, str] = {}
        self._signer_keys: List[str] = []
        self._genesis_time: Optional[int] = None
        self._slot_duration: Optional[int] = None
        self._slots: int = 10
        self._delay: int = 4
        self._txns_per_slot: int = 2
        self._max_txns_per_slot: int = 8
        self._size_kb: int = 64
        self._trim_bytes: int = 256
        self._recipient: str = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
        self._fee_multiplier: int = 2
        self._gas_multiplier: int = 2
        self._priority_fee: int = 10_000_000_000
        self._gas_limit_mode: GasLimitMode = GasLimitMode.ESTIMATE
        self._build_strategy: BuildStrategy = BuildStrategy.ON_DEMAND
        self._broadcast_failure: BroadcastFailurePolicy = BroadcastFailurePolicy.ABORT
        self._confirmation_timeout: Optional[float] = None
        self._polling_interval: float = 4.0
        self._request_timeout: int = 10_000
        self._tick_interval: float = 1.0

    def endpoint(self, url: str, headers: Optional[Dict[str, str]] = None) -> ConfigBuilder:
        """Add an RPC endpoint. May be called repeatedly."""
        self._endpoints.append(EndpointConfig(url=url, headers=dict(headers or {})))
        return self

    def header(self, name: str, value: str) -> ConfigBuilder:
        """Add an HTTP header sent to every endpoint."""
        self._headers[name] = value
        return self

    def signer(self, key: str) -> ConfigBuilder:
        self._signer_keys.append(key)
        return self

    def signers(self, keys: List[str]) -> ConfigBuilder:
        self._signer_keys.extend(keys)
        return self

    def genesis_time(self, timestamp: int) -> ConfigBuilder:
        self._genesis_time = timestamp
        return self

    def slot_duration(self, seconds: int) -> ConfigBuilder:
        self._slot_duration = seconds
        return self

    def slots(self, n: int) -> ConfigBuilder:
        self._slots = n
        return self

    def delay(self, seconds: int) -> ConfigBuilder:
        self._delay = seconds
        return self

    def txns_per_slot(self, n: int) -> ConfigBuilder:
        self._txns_per_slot = n
        return self

    def max_txns_per_slot(self, n: int) -> ConfigBuilder:
        self._max_txns_per_slot = n
        return self

    def size_kb(self, kb: int) -> ConfigBuilder:
        self._size_kb = kb
        return self

    def trim_bytes(self, n: int) -> ConfigBuilder:
        self._trim_bytes = n
        return self

    def recipient(self, address: str) -> ConfigBuilder:
        self._recipient = address
        return self

    def fee_multiplier(self, n: int) -> ConfigBuilder:
        self._fee_multiplier = n
        return self

    def gas_multiplier(self, n: int) -> ConfigBuilder:
        self._gas_multiplier = n
        return self

    def priority_fee(self, wei: int) -> ConfigBuilder:
        self._priority_fee = wei
        return self

    def gas_limit_mode(self, mode: GasLimitMode) -> ConfigBuilder:
        self._gas_limit_mode = mode
        return self

    def build_strategy(self, strategy: BuildStrategy) -> ConfigBuilder:
        self._build_strategy = strategy
        return self

    def broadcast_failure(self, policy: BroadcastFailurePolicy) -> ConfigBuilder:
        self._broadcast_failure = policy
        return self

    def confirmation_timeout(self, seconds: Optional[float]) -> ConfigBuilder:
        """Give up on a confirmation after this many seconds (None waits forever)."""
        self._confirmation_timeout = seconds
        return self

    def polling_interval(self, seconds: float) -> ConfigBuilder:
        self._polling_interval = seconds
        return self

    def request_timeout(self, ms: int) -> ConfigBuilder:
        self._request_timeout = ms
        return self

    def tick_interval(self, seconds: float) -> ConfigBuilder:
        self._tick_interval = seconds
        return self

    def build(self) -> PacerConfig:
        if not self._endpoints:
            raise PacerError.config("at least one endpoint is required")
        if not self._signer_keys:
            raise PacerError.config("at least one signer key is required")
        if self._genesis_time is None:
            raise PacerError.config("genesis_time is required")
        if self._slot_duration is None:
            raise PacerError.config("slot_duration is required")
        if self._slot_duration <= 0:
            raise PacerError.config("slot_duration must be positive")
        if self._delay < 0 or self._delay >= self._slot_duration:
            raise PacerError.config("delay must be between 0 and slot_duration - 1")
        for name, value in (
            ("slots", self._slots),
            ("txns_per_slot", self._txns_per_slot),
            ("max_txns_per_slot", self._max_txns_per_slot),
            ("size_kb", self._size_kb),
            ("trim_bytes", self._trim_bytes),
            ("priority_fee", self._priority_fee),
        ):
            if value < 0:
                raise PacerError.config(f"{name} must not be negative")
        if self._fee_multiplier < 1 or self._gas_multiplier < 1:
            raise PacerError.config("fee and gas multipliers must be at least 1")
        if self._confirmation_timeout is not None and self._confirmation_timeout <= 0:
            raise PacerError.config("confirmation_timeout must be positive")
        if self._polling_interval <= 0 or self._tick_interval <= 0:
            raise PacerError.config("polling and tick intervals must be positive")
        if not is_address(self._recipient):
            raise PacerError.config(f"recipient is not an address: {self._recipient}")

        endpoints = [
            EndpointConfig(url=e.url, headers={**self._headers, **e.headers})
            for e in self._endpoints
        ]

        return PacerConfig(
            endpoints=endpoints,
            signer_keys=list(self._signer_keys),
            genesis_time=self._genesis_time,
            slot_duration=self._slot_duration,
            slots=self._slots,
            delay=self._delay,
            txns_per_slot=self._txns_per_slot,
            max_txns_per_slot=self._max_txns_per_slot,
            size_kb=self._size_kb,
            trim_bytes=self._trim_bytes,
            recipient=to_checksum_address(self._recipient),
            fee_multiplier=self._fee_multiplier,
            gas_multiplier=self._gas_multiplier,
            priority_fee=self._priority_fee,
            gas_limit_mode=self._gas_limit_mode,
            build_strategy=self._build_strategy,
            broadcast_failure=self._broadcast_failure,
            confirmation_timeout=self._confirmation_timeout,
            polling_interval=self._polling_interval,
            request_timeout=self._request_timeout,
            tick_interval=self._tick_interval,
        )


def config_builder() -> ConfigBuilder:
    """Create a new ConfigBuilder instance."""
    return ConfigBuilder()


def parse_header(header: str) -> Tuple[str, str]:
    """Split a ``name:value`` header option.

    Only the first colon separates, so values may contain colons.
    """
    name, sep, value = header.partition(":")
    name = name.strip()
    if not sep or not name:
        raise PacerError.config(f"malformed header (expected name:value): {header!r}")
    return name, value.strip()


def parse_signer_keys(value: str) -> List[str]:
    """Split a comma-separated list of private keys."""
    keys = [k.strip() for k in value.split(",") if k.strip()]
    if not keys:
        raise PacerError.config("no signer keys given")
    return keys
