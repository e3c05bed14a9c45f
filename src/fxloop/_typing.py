from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:  # pragma: no cover - type check only
    from .container import Container
    from .effects import Effect, Loop


S = TypeVar("S")
A = TypeVar("A")

Reducer = Callable[[S, A], S]
"""A plain reducer, as understood by the underlying container."""

LoopReducer = Callable[[S, A], "Loop[S, A]"]
"""A reducer that returns the next state together with the effects to run."""

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]

Feedback = Callable[[A], "list[Effect[A]]"]
"""Commit one action synchronously and return the effects its reducer queued."""

Producer = Callable[[], Awaitable[A]]


class StoreCreator(Protocol):
    def __call__(
        self, reducer: Reducer[Any, Any], initial_state: Any, /
    ) -> "Container[Any, Any]": ...


Enhancer = Callable[[StoreCreator], StoreCreator]
"""Wraps the container factory, e.g. to observe or decorate ``dispatch``."""
