"""Unit test fixtures (mocks and stubs).

Provides fake operations and recoverers for exercising the executor.
"""

from unittest.mock import Mock

import pytest


@pytest.fixture
def failing_operation():
    """Factory for an operation that fails `failures` times, then returns `result`.

    Usage:
        def test_something(failing_operation):
            operation = failing_operation(failures=2, result="done")
    """
    def _create(failures: int = 1, result: str = "ok", error_type: type[Exception] = ConnectionError) -> Mock:
        errors = [error_type(f"attempt {i + 1} failed") for i in range(failures)]
        return Mock(side_effect=errors + [result])

    return _create


@pytest.fixture
def always_failing():
    """Factory for an operation that raises a new error on every call."""
    def _create(error_type: type[Exception] = ConnectionError) -> Mock:
        calls = {"n": 0}

        def _fail():
            calls["n"] += 1
            raise error_type(f"attempt {calls['n']} failed")

        return Mock(side_effect=_fail)

    return _create


@pytest.fixture
def recoverer() -> Mock:
    """Recoverer returning a marker result."""
    return Mock(return_value="recovered")
