"""
Enumerations for the stateful retry package.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class RetryDecision(str, Enum):
    """
    Outcome of a retry policy check after a failed attempt.

    CONTINUE leaves the item's context in the cache so the next invocation
    for the same key carries on the sequence. EXHAUSTED ends the sequence and
    routes the item to recovery.
    """

    CONTINUE = "continue"
    EXHAUSTED = "exhausted"
