"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import random

import pytest

from stateful_retry.config import Settings
from stateful_retry.retry import (
    ExponentialBackoffPolicy,
    FixedAttemptsRetryPolicy,
    StatefulRetryExecutor,
)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with deterministic defaults.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.RETRY_MAX_ATTEMPTS = 5
    """
    return Settings(
        # === Application ===
        APP_NAME="stateful-retry (Test)",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Retry ===
        RETRY_POLICY="fixed",
        RETRY_MAX_ATTEMPTS=3,
        RETRY_TIMEOUT_MS=None,

        # === Backoff ===
        BACKOFF_ENABLED=True,
        BACKOFF_INITIAL_INTERVAL_MS=50,
        BACKOFF_MULTIPLIER=2.0,
        BACKOFF_MAX_INTERVAL_MS=3000,
        BACKOFF_JITTER=False,

        # === Cache ===
        CONTEXT_CACHE_CAPACITY=16,
        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def seeded_rng() -> random.Random:
    """Deterministic random source for jitter tests."""
    return random.Random(1234)


@pytest.fixture
def executor() -> StatefulRetryExecutor:
    """Executor allowing three attempts per key, exponential backoff 50ms..3s."""
    return StatefulRetryExecutor(
        retry_policy=FixedAttemptsRetryPolicy(max_attempts=3),
        backoff_policy=ExponentialBackoffPolicy(
            initial_interval_ms=50, multiplier=2.0, max_interval_ms=3000
        ),
        capacity=16,
        metrics_enabled=False,
    )
