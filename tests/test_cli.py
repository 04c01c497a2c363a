"""Tests for the command line entry point."""

import pytest

from slotpacer.cli import EXIT_CONFIG, build_parser, config_from_args, main
from slotpacer.errors import PacerError
from slotpacer.types import BroadcastFailurePolicy, BuildStrategy, GasLimitMode

from conftest import DEV_KEYS, GWEI


@pytest.fixture(autouse=True)
def no_env_signers(monkeypatch):
    monkeypatch.delenv("SLOTPACER_SIGNERS", raising=False)


def _parse(*argv):
    return config_from_args(build_parser().parse_args(list(argv)))


class TestConfigFromArgs:
    def test_defaults(self):
        config = _parse("--genesis-time", "1606824023", "--slot-duration", "12", "-s", DEV_KEYS[0])
        assert [e.url for e in config.endpoints] == ["http://localhost:8545"]
        assert config.genesis_time == 1606824023
        assert config.slot_duration == 12
        assert config.delay == 4
        assert config.total_target == 20
        assert config.priority_fee == 10 * GWEI
        assert config.gas_limit_mode == GasLimitMode.ESTIMATE
        assert config.build_strategy == BuildStrategy.ON_DEMAND

    def test_full_options(self):
        config = _parse(
            "--genesis-time", "100", "--slot-duration", "12",
            "-r", "http://a:8545,http://b:8545",
            "-r", "http://c:8545",
            "--header", "Authorization: Bearer t",
            "-s", ",".join(DEV_KEYS),
            "-z", "8", "--trim-bytes", "0",
            "-b", "5", "-d", "0", "-t", "3", "-m", "4",
            "-f", "3", "-g", "1", "-p", "1.5",
            "--gas-limit", "formula",
            "--presign",
            "--on-broadcast-failure", "skip",
            "--confirmation-timeout", "60",
        )
        assert [e.url for e in config.endpoints] == ["http://a:8545", "http://b:8545", "http://c:8545"]
        assert all(e.headers == {"Authorization": "Bearer t"} for e in config.endpoints)
        assert config.signer_keys == DEV_KEYS
        assert config.payload_size == 8 * 1024
        assert config.slots == 5
        assert config.delay == 0
        assert config.txns_per_slot == 3
        assert config.max_txns_per_slot == 4
        assert config.fee_multiplier == 3
        assert config.gas_multiplier == 1
        assert config.priority_fee == 1_500_000_000
        assert config.gas_limit_mode == GasLimitMode.FORMULA
        assert config.build_strategy == BuildStrategy.PRESIGNED
        assert config.broadcast_failure == BroadcastFailurePolicy.SKIP
        assert config.confirmation_timeout == 60

    def test_signers_from_environment(self, monkeypatch):
        monkeypatch.setenv("SLOTPACER_SIGNERS", ",".join(DEV_KEYS))
        config = _parse("--genesis-time", "0", "--slot-duration", "12")
        assert config.signer_keys == DEV_KEYS

    def test_missing_signer(self):
        with pytest.raises(PacerError) as exc_info:
            _parse("--genesis-time", "0", "--slot-duration", "12")
        assert exc_info.value.code == "CONFIG"

    def test_bad_priority_fee(self):
        with pytest.raises(PacerError) as exc_info:
            _parse("--genesis-time", "0", "--slot-duration", "12", "-s", DEV_KEYS[0], "-p", "fast")
        assert "priority fee" in str(exc_info.value)

    def test_genesis_time_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--slot-duration", "12", "-s", DEV_KEYS[0]])


class TestMain:
    def test_config_error_exit_code(self):
        assert main(["--genesis-time", "0", "--slot-duration", "12"]) == EXIT_CONFIG

    def test_malformed_header_exit_code(self):
        argv = ["--genesis-time", "0", "--slot-duration", "12", "-s", DEV_KEYS[0], "--header", "broken"]
        assert main(argv) == EXIT_CONFIG

    def test_invalid_delay_exit_code(self):
        argv = ["--genesis-time", "0", "--slot-duration", "12", "-s", DEV_KEYS[0], "-d", "12"]
        assert main(argv) == EXIT_CONFIG

    def test_invalid_key_exit_code(self):
        # key validation happens when the runner is built, before any request
        assert main(["--genesis-time", "0", "--slot-duration", "12", "-s", "0xnotakey"]) == EXIT_CONFIG
