"""Custom Prometheus metrics for stateful retry.

These metrics live in the default registry; the host application exposes them
on its own /metrics endpoint. Every series carries an `executor` label (the
executor's name), so several executors in one process report separately.

Alert rules should be configured for:
- stateful_retry_exhausted_total (items given up on, recovered or not)
- stateful_retry_recovery_failures_total (recoverer itself failing)
- stateful_retry_context_evictions_total (cache too small for the failure volume)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Attempt Metrics ===

retry_attempts_total = Counter(
    "stateful_retry_attempts_total",
    "Total attempts made through the stateful retry executor by outcome",
    ["executor", "outcome"],
)
"""
Attempts counter by outcome.

Labels:
- executor: executor name
- outcome: success, failure (counted against the retry budget), fatal (programming error, not counted)

Alert thresholds:
- WARN: failure rate > 10% of attempts
"""

# === Exhaustion Metrics ===

retry_exhausted_total = Counter(
    "stateful_retry_exhausted_total",
    "Total items whose retry budget was exhausted",
    ["executor", "recovered"],
)
"""
Exhaustion counter.

Labels:
- executor: executor name
- recovered: true (recoverer returned a substitute result), false (final failure propagated)
"""

retry_recovery_failures_total = Counter(
    "stateful_retry_recovery_failures_total",
    "Total recoverer invocations that raised",
    ["executor"],
)

# === Context Cache Metrics ===

retry_context_evictions_total = Counter(
    "stateful_retry_context_evictions_total",
    "Total retry contexts removed before the item finished",
    ["executor", "reason"],
)
"""
Eviction counter.

Labels:
- executor: executor name
- reason: capacity (LRU eviction on insert), manual (caller abandoned the item)

Alert thresholds:
- WARN: any capacity eviction (items silently restart their retry budget)
"""

retry_contexts_active = Gauge(
    "stateful_retry_contexts_active",
    "Retry contexts currently held in the cache",
    ["executor"],
)

# === Backoff Metrics ===

retry_backoff_delay_seconds = Histogram(
    "stateful_retry_backoff_delay_seconds",
    "Advisory delay handed to callers before redelivery, in seconds",
    ["executor"],
    buckets=[0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
)
