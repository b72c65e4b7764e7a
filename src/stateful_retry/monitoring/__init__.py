"""Monitoring and metrics instrumentation for stateful retry.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from stateful_retry.monitoring.metrics import (
    retry_attempts_total,
    retry_backoff_delay_seconds,
    retry_context_evictions_total,
    retry_contexts_active,
    retry_exhausted_total,
    retry_recovery_failures_total,
)

__all__ = [
    "retry_attempts_total",
    "retry_exhausted_total",
    "retry_recovery_failures_total",
    "retry_context_evictions_total",
    "retry_contexts_active",
    "retry_backoff_delay_seconds",
]
