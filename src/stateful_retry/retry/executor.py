"""
Stateful retry executor.

Runs one attempt of an operation per call and remembers failures by item key,
so retries happen across separate invocations (message redelivery, task
re-queue) instead of in a loop. Each call ends one of three ways:

    1. Success: the key's context is dropped and the result returned
    2. Retryable failure: the context is kept and the original exception re-raised
       for the caller to redeliver after `pending_delay(key)` milliseconds
    3. Exhaustion: the context is dropped and the recoverer's result returned,
       or the final exception re-raised when there is no recoverer

Usage:
    executor = StatefulRetryExecutor(retry_policy=FixedAttemptsRetryPolicy(3))
    result = executor.execute(message.id, lambda: handle(message), recoverer=send_to_dlq)

    @stateful_retry(executor, recoverer=send_to_dlq)
    def handle(message): ...
"""

import functools
import inspect
from collections.abc import Callable, Hashable
from typing import TYPE_CHECKING, Any, Optional, TypeVar

import structlog

from stateful_retry.logging_config import configure_logging
from stateful_retry.models.enums import RetryDecision
from stateful_retry.monitoring import metrics
from stateful_retry.retry.backoff import (
    BackoffPolicy,
    ExponentialBackoffPolicy,
    ExponentialRandomBackoffPolicy,
)
from stateful_retry.retry.cache import LRURetryContextCache, RetryContextCache
from stateful_retry.retry.context import RetryContext
from stateful_retry.retry.exceptions import RetryConfigurationError
from stateful_retry.retry.locks import KeyLocks
from stateful_retry.retry.policies import (
    AlwaysRetryPolicy,
    CompositeRetryPolicy,
    FixedAttemptsRetryPolicy,
    NeverRetryPolicy,
    RetryPolicy,
    TimeoutRetryPolicy,
)
from stateful_retry.retry.state import KeyGenerator, NewItemIdentifier, RetryState

if TYPE_CHECKING:
    from stateful_retry.config import Settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Recoverer = Callable[[list[Any], BaseException], Any]

# Programming errors: never retried, never recovered, not counted
DEFAULT_FATAL_EXCEPTIONS: tuple[type[BaseException], ...] = (
    TypeError,
    NameError,
    AttributeError,
    AssertionError,
)


class StatefulRetryExecutor:
    """
    Keyed retry executor.

    Owns the context cache and consults the retry policy after every failed
    attempt. Calls for the same key are serialized through a per-key lock;
    calls for different keys never wait on each other.

    Attributes:
        retry_policy: Decides CONTINUE/EXHAUSTED after each failure
        backoff_policy: Computes the advisory delay before redelivery (optional)
        cache: Key to RetryContext store
        fatal_exceptions: Exception types that always propagate untouched
        metrics_enabled: Record Prometheus metrics
        name: Metrics label; executors sharing a process should use distinct names
    """

    def __init__(
        self,
        retry_policy: RetryPolicy | None = None,
        backoff_policy: BackoffPolicy | None = None,
        cache: RetryContextCache | None = None,
        capacity: int = 4096,
        fatal_exceptions: tuple[type[BaseException], ...] = DEFAULT_FATAL_EXCEPTIONS,
        metrics_enabled: bool = True,
        name: str = "default",
    ):
        """
        Initialize the executor.

        Args:
            retry_policy: Retry policy (default: NeverRetryPolicy)
            backoff_policy: Backoff policy; None disables advisory delays
            cache: Context cache (default: LRURetryContextCache(capacity))
            capacity: Capacity of the default cache
            fatal_exceptions: Exception types treated as bugs, not failures
            metrics_enabled: Record Prometheus metrics
            name: Label identifying this executor in metrics

        Raises:
            RetryConfigurationError: If capacity < 1
        """
        self.retry_policy: RetryPolicy = retry_policy or NeverRetryPolicy()
        self.backoff_policy = backoff_policy
        self.cache: RetryContextCache = cache if cache is not None else LRURetryContextCache(capacity)
        self.fatal_exceptions = tuple(fatal_exceptions)
        self.metrics_enabled = metrics_enabled
        self.name = name
        self._key_locks = KeyLocks()

        logger.debug(
            "StatefulRetryExecutor initialized",
            retry_policy=type(self.retry_policy).__name__,
            backoff_policy=type(backoff_policy).__name__ if backoff_policy else None,
            capacity=self.cache.capacity,
            executor=name,
        )

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "StatefulRetryExecutor":
        """
        Build an executor from application settings.

        Uses the process-wide settings when none are given, and sets up
        logging first when CONFIGURE_LOGGING is enabled.
        """
        if settings is None:
            from stateful_retry import config

            settings = config.settings

        if settings.CONFIGURE_LOGGING:
            configure_logging(settings)

        retry_policy: RetryPolicy
        if settings.RETRY_POLICY == "never":
            retry_policy = NeverRetryPolicy()
        elif settings.RETRY_POLICY == "always":
            retry_policy = AlwaysRetryPolicy()
        else:
            retry_policy = FixedAttemptsRetryPolicy(settings.RETRY_MAX_ATTEMPTS)

        if settings.RETRY_TIMEOUT_MS:
            retry_policy = CompositeRetryPolicy(
                [retry_policy, TimeoutRetryPolicy(settings.RETRY_TIMEOUT_MS)]
            )

        backoff_policy: BackoffPolicy | None = None
        if settings.BACKOFF_ENABLED:
            exponential = ExponentialBackoffPolicy(
                initial_interval_ms=settings.BACKOFF_INITIAL_INTERVAL_MS,
                multiplier=settings.BACKOFF_MULTIPLIER,
                max_interval_ms=settings.BACKOFF_MAX_INTERVAL_MS,
            )
            backoff_policy = (
                ExponentialRandomBackoffPolicy(exponential)
                if settings.BACKOFF_JITTER
                else exponential
            )

        return cls(
            retry_policy=retry_policy,
            backoff_policy=backoff_policy,
            capacity=settings.CONTEXT_CACHE_CAPACITY,
            name=settings.APP_NAME,
            metrics_enabled=settings.PROMETHEUS_ENABLED,
        )

    def execute(
        self,
        state: RetryState | Hashable,
        operation: Callable[[], T],
        recoverer: Recoverer | None = None,
    ) -> T:
        """
        Run one attempt of `operation` for the item identified by `state`.

        Args:
            state: RetryState, or a bare key (the key is then also the recoverer's only argument)
            operation: Zero-argument callable performing the work
            recoverer: Called as recoverer(args, last_failure) once retries are exhausted

        Returns:
            The operation's result, or the recoverer's result after exhaustion

        Raises:
            Exception: The operation's own exception while retries remain, or after
                exhaustion when no recoverer is configured
        """
        if not isinstance(state, RetryState):
            state = RetryState(key=state, args=(state,))

        logger.debug(
            "Executing in stateful retry",
            key=repr(state.key),
            force_refresh=state.force_refresh,
        )

        with self._key_locks.hold(state.key):
            context = self._open(state)

            try:
                result = operation()
            except self.fatal_exceptions as e:
                self._count_attempt("fatal")
                logger.error(
                    "Non-retryable programming error in stateful retry",
                    key=repr(state.key),
                    error_type=type(e).__name__,
                    attempt_count=context.attempt_count,
                )
                raise
            except Exception as e:
                self._count_attempt("failure")
                decision = self._register_failure(context, e)

                if decision is RetryDecision.EXHAUSTED:
                    self._exhaust(context, recovered=recoverer is not None)
                    if recoverer is not None:
                        return self._recover(state, context, recoverer)
                raise

            self._count_attempt("success")
            self._close(state.key)

            if context.attempt_count:
                logger.info(
                    "Stateful retry succeeded after failures",
                    key=repr(state.key),
                    failed_attempts=context.attempt_count,
                )
            return result

    def wrap(
        self,
        func: Callable[..., T],
        key_generator: KeyGenerator | None = None,
        new_item_identifier: NewItemIdentifier | None = None,
        recoverer: Recoverer | None = None,
    ) -> Callable[..., T]:
        """
        Wrap a function so each call runs through this executor.

        The positional arguments identify the item (see RetryState.from_args).
        When the first parameter is `self` or `cls` the function is treated as
        a method: the receiver is left out of the key, the key generator's
        input and the arguments handed to the recoverer.

        Raises:
            RetryConfigurationError: If func takes no positional arguments
                besides a method receiver
        """
        skip = 1 if _require_positional_parameters(func) else 0

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            state = RetryState.from_args(args[skip:], key_generator, new_item_identifier)
            return self.execute(state, lambda: func(*args, **kwargs), recoverer)

        return wrapper

    def pending_delay(self, key: Hashable) -> int | None:
        """Advisory delay (ms) before redelivering `key`, or None if not retrying."""
        with self._key_locks.hold(key):
            context = self.cache.get(key)
            return context.next_delay_ms if context is not None else None

    def attempt_count(self, key: Hashable) -> int:
        """Failed attempts recorded for `key` in its current sequence."""
        with self._key_locks.hold(key):
            context = self.cache.get(key)
            return context.attempt_count if context is not None else 0

    def evict(self, key: Hashable) -> bool:
        """Abandon the retry sequence for `key`. Returns True if one existed."""
        with self._key_locks.hold(key):
            removed = self.cache.remove(key) is not None

        if removed:
            logger.info("Retry context evicted by caller", key=repr(key))
            if self.metrics_enabled:
                metrics.retry_context_evictions_total.labels(
                    executor=self.name, reason="manual"
                ).inc()
            self._update_active_gauge()
        return removed

    def clear(self) -> None:
        """Drop every retry context."""
        self.cache.clear()
        self._update_active_gauge()

    # ------------------------------------------------------------------

    def _open(self, state: RetryState) -> RetryContext:
        context = None if state.force_refresh else self.cache.get(state.key)
        if context is not None:
            return context

        if state.force_refresh and self.cache.remove(state.key) is not None:
            logger.info("Discarding cached retry context for new item", key=repr(state.key))
            self._update_active_gauge()

        backoff = self.backoff_policy.start() if self.backoff_policy else None
        return RetryContext(key=state.key, backoff=backoff)

    def _register_failure(self, context: RetryContext, error: Exception) -> RetryDecision:
        attempt_count = context.register_failure(error)
        decision = self.retry_policy.should_retry(context)

        if decision is RetryDecision.CONTINUE:
            if self.backoff_policy is not None:
                context.next_delay_ms = self.backoff_policy.next_delay(context.backoff)
                if self.metrics_enabled:
                    metrics.retry_backoff_delay_seconds.labels(executor=self.name).observe(
                        context.next_delay_ms / 1000
                    )

            evicted = self.cache.put(context.key, context)
            if evicted is not None and self.metrics_enabled:
                metrics.retry_context_evictions_total.labels(
                    executor=self.name, reason="capacity"
                ).inc()
            self._update_active_gauge()

        logger.warning(
            "Stateful retry attempt failed",
            key=repr(context.key),
            attempt_count=attempt_count,
            error_type=type(error).__name__,
            decision=decision.value,
            next_delay_ms=context.next_delay_ms if decision is RetryDecision.CONTINUE else None,
        )
        return decision

    def _exhaust(self, context: RetryContext, recovered: bool) -> None:
        context.exhausted = True
        self._close(context.key)

        logger.warning(
            "Stateful retry exhausted",
            key=repr(context.key),
            attempt_count=context.attempt_count,
            error_type=type(context.last_failure).__name__,
            recovering=recovered,
        )
        if self.metrics_enabled:
            metrics.retry_exhausted_total.labels(
                executor=self.name, recovered=str(recovered).lower()
            ).inc()

    def _recover(self, state: RetryState, context: RetryContext, recoverer: Recoverer) -> Any:
        try:
            result = recoverer(list(state.args), context.last_failure)
        except Exception as e:
            logger.error(
                "Recovery handler failed",
                key=repr(state.key),
                error_type=type(e).__name__,
            )
            if self.metrics_enabled:
                metrics.retry_recovery_failures_total.labels(executor=self.name).inc()
            raise

        logger.info(
            "Stateful retry recovered",
            key=repr(state.key),
            attempt_count=context.attempt_count,
        )
        return result

    def _close(self, key: Hashable) -> None:
        if self.cache.remove(key) is not None:
            self._update_active_gauge()

    def _count_attempt(self, outcome: str) -> None:
        if self.metrics_enabled:
            metrics.retry_attempts_total.labels(executor=self.name, outcome=outcome).inc()

    def _update_active_gauge(self) -> None:
        if self.metrics_enabled:
            metrics.retry_contexts_active.labels(executor=self.name).set(len(self.cache))


_RECEIVER_NAMES = ("self", "cls")


def _require_positional_parameters(func: Callable[..., Any]) -> bool:
    """Check func can be keyed; return True if its first parameter is a method receiver."""
    try:
        parameters = list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError):
        # No introspectable signature; checked per call instead
        return False

    has_receiver = bool(parameters) and (
        parameters[0].name in _RECEIVER_NAMES
        and parameters[0].kind
        in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    )
    if has_receiver:
        parameters = parameters[1:]

    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    if not any(p.kind in positional for p in parameters):
        raise RetryConfigurationError(
            "Stateful retry applied to a function that takes no arguments",
            {"function": getattr(func, "__qualname__", repr(func))},
        )
    return has_receiver


def stateful_retry(
    executor: StatefulRetryExecutor,
    key_generator: KeyGenerator | None = None,
    new_item_identifier: NewItemIdentifier | None = None,
    recoverer: Recoverer | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator form of StatefulRetryExecutor.wrap.

    Example:
        @stateful_retry(executor, key_generator=lambda args: args[0].msg_id)
        def handle(message): ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        return executor.wrap(func, key_generator, new_item_identifier, recoverer)

    return decorator
