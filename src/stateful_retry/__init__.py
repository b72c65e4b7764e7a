"""
Stateful retry for redelivered units of work.

Keeps per-item retry progress across separate invocations so that a failed
item (e.g. a message the broker will redeliver) is retried a bounded number
of times and then handed to a recovery callback instead of looping forever.

Architecture: keyed context cache + pluggable retry/backoff policies + executor
"""

__version__ = "0.1.0"
