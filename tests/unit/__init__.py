"""
Unit tests for stateful retry.

Test individual components in isolation:
- Backoff policies (exponential growth, cap, jitter bounds)
- Retry policies (attempt budgets, classification, composition)
- Context cache (capacity bound, LRU eviction, thread safety)
- Retry state (key derivation, refresh flag)
- Executor (success/retry/exhaustion/recovery protocol, decorator)
- Settings
"""
