"""Tests for reconnect policies."""

import pytest

from ssekit.client.policy import (
    ExponentialBackoff,
    Immediate,
    Never,
    policy_from_config,
)
from ssekit.config import SSEConfig


class TestExponentialBackoff:
    def test_delays_bounded_by_max(self):
        policy = ExponentialBackoff(base=1.0, max=30.0)
        delays = [policy.delay(attempt) for attempt in range(8)]
        assert delays == [1, 2, 4, 8, 16, 30, 30, 30]

    def test_never_exceeds_max(self):
        policy = ExponentialBackoff(base=0.5, max=10.0)
        assert all(policy.delay(a) <= 10.0 for a in range(100))

    def test_huge_attempt_capped(self):
        assert ExponentialBackoff(base=1.0, max=30.0).delay(5000) == 30.0

    def test_server_retry_overrides(self):
        policy = ExponentialBackoff(base=1.0, max=30.0)
        assert policy.delay(4, server_retry=0.25) == 0.25

    def test_server_retry_zero_overrides(self):
        assert ExponentialBackoff().delay(3, server_retry=0.0) == 0.0

    def test_reconnects(self):
        assert ExponentialBackoff().reconnects

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValueError):
            ExponentialBackoff().delay(-1)

    def test_negative_base_rejected(self):
        with pytest.raises(ValueError):
            ExponentialBackoff(base=-1.0)


class TestImmediate:
    def test_zero_delay(self):
        assert Immediate().delay(0) == 0.0
        assert Immediate().delay(9) == 0.0

    def test_server_retry_overrides(self):
        assert Immediate().delay(0, server_retry=2.0) == 2.0

    def test_reconnects(self):
        assert Immediate().reconnects


class TestNever:
    def test_does_not_reconnect(self):
        assert not Never().reconnects


class TestPolicyFromConfig:
    def test_default_is_exponential(self):
        policy = policy_from_config(SSEConfig())
        assert policy == ExponentialBackoff(base=1.0, max=30.0)

    def test_custom_backoff(self):
        config = SSEConfig(backoff_base=0.5, backoff_max=4.0)
        assert policy_from_config(config) == ExponentialBackoff(base=0.5, max=4.0)

    def test_never(self):
        assert isinstance(policy_from_config(SSEConfig(reconnect="never")), Never)

    def test_immediate(self):
        assert isinstance(policy_from_config(SSEConfig(reconnect="immediate")), Immediate)

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SSEKIT_RECONNECT", "never")
        monkeypatch.setenv("SSEKIT_BACKOFF_MAX", "5")
        config = SSEConfig()
        assert config.reconnect == "never"
        assert config.backoff_max == 5.0
