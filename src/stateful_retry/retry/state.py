"""
Per-call retry state and item key derivation.

Stateful retry only works if every redelivery of the same item maps to the
same key. RetryState carries that key for one invocation, together with the
original arguments (handed to the recoverer on exhaustion) and a flag telling
the executor to ignore any cached progress for the key.
"""

import hashlib
import json
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass
from typing import Any

from stateful_retry.retry.exceptions import RetryConfigurationError

KeyGenerator = Callable[[Sequence[Any]], Hashable]
NewItemIdentifier = Callable[[Sequence[Any]], bool]


@dataclass(frozen=True)
class RetryState:
    """
    Retry descriptor for one invocation.

    Attributes:
        key: Stable identity of the item across redeliveries
        force_refresh: Start a new attempt sequence even if the key is cached
        args: Original call arguments, passed to the recoverer
    """

    key: Hashable
    force_refresh: bool = False
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        try:
            hash(self.key)
        except TypeError as e:
            raise RetryConfigurationError(
                "Retry key must be hashable; supply a key_generator",
                {"key_type": type(self.key).__name__},
            ) from e

    @classmethod
    def from_args(
        cls,
        args: Sequence[Any],
        key_generator: KeyGenerator | None = None,
        new_item_identifier: NewItemIdentifier | None = None,
    ) -> "RetryState":
        """
        Build the retry state for a call from its positional arguments.

        The key defaults to the single argument itself, or the tuple of all
        arguments when there are several.

        Raises:
            RetryConfigurationError: If there are no arguments to key on
        """
        args = tuple(args)
        if not args:
            raise RetryConfigurationError(
                "Stateful retry applied to a call that takes no arguments"
            )

        if key_generator is not None:
            key = key_generator(args)
        else:
            key = args[0] if len(args) == 1 else args

        force_refresh = bool(new_item_identifier(args)) if new_item_identifier else False
        return cls(key=key, force_refresh=force_refresh, args=args)


def _encode_for_key(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=_canonical_json)
    kind = type(value)
    if kind.__repr__ is object.__repr__ and kind.__str__ is object.__str__:
        # Default repr embeds the memory address, which differs per process
        raise TypeError(f"{kind.__name__} has no stable text form")
    return str(value)


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=_encode_for_key, separators=(",", ":"))


def content_hash_key(args: Sequence[Any]) -> str:
    """
    Key generator hashing the call arguments' content.

    Produces the same key in every process (unlike the built-in hash()) and
    accepts unhashable payloads such as dicts. Sets are hashed by their sorted
    members; other objects JSON cannot encode are hashed by their str().

    Raises:
        RetryConfigurationError: If an argument has no process-stable text form
            (an object with the default identity repr) or a dict mixes key types
    """
    try:
        payload = _canonical_json(list(args))
    except (TypeError, ValueError) as e:
        raise RetryConfigurationError(
            "Arguments cannot be content-hashed; supply a key_generator",
            {"reason": str(e)},
        ) from e
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
