import inspect
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple, TypeVar

S = TypeVar("S")  # State held by a store
A = TypeVar("A")  # Value produced by an effect (usually an action)
T = TypeVar("T")  # Value produced by a mapped effect


class MissingAsyncSupportError(RuntimeError):
    """Raised when asyncio is unavailable, or no event loop is running to drive effects."""


class EffectCreatorInvalidError(TypeError):
    """Raised when an effect's producer returns something that is not awaitable.

    This is a programming error by whoever built the effect, not a runtime fluke.
    """

    __match_args__ = ("effect", "value")

    def __init__(self, effect: "Effect[Any]", value: Any):
        super().__init__(
            f"Effect producer must return an awaitable, got {type(value).__name__}: {effect!r}"
        )
        self.effect = effect
        self.value = value


class EffectExecutionFailedError(Exception):
    """Raised when an effect's awaitable fails or its action could not be fed back.

    The original exception is kept as ``cause`` and chained as ``__cause__``.
    """

    __match_args__ = ("effect", "cause")

    def __init__(self, effect: "Effect[Any]", cause: BaseException):
        super().__init__(f"Effect failed: {effect!r} ({type(cause).__name__}: {cause})")
        self.effect = effect
        self.cause = cause


class Effect[A]:
    """A lazy description of an asynchronous computation that yields a value.

    Building or mapping an effect never runs anything. Only :meth:`resolve`
    calls the producer, and it does so again on every call.
    """

    __slots__ = ("_producer",)

    def __init__(self, producer: Callable[[], Awaitable[A]]):
        if not callable(producer):
            raise TypeError(f"Effect producer must be callable, got {producer!r}")
        self._producer = producer

    def map(self, fn: Callable[[A], T]) -> "Effect[T]":
        """Return a new effect that applies ``fn`` to this effect's result."""
        source = self

        async def _mapped() -> T:
            return fn(await source.resolve())

        _mapped.__qualname__ = f"{_producer_name(self._producer)}.map({_producer_name(fn)})"
        return Effect(_mapped)

    def resolve(self) -> Awaitable[A]:
        """Call the producer and return its awaitable.

        Raises:
            EffectCreatorInvalidError: If the producer returned a non-awaitable value.
        """
        value = self._producer()
        if not inspect.isawaitable(value):
            raise EffectCreatorInvalidError(self, value)
        return value

    def __repr__(self) -> str:
        return f"Effect({_producer_name(self._producer)})"


class Loop[S, A](NamedTuple):
    """What a loop reducer returns: the next state and the effects to run after it."""

    state: S
    effects: tuple[Effect[A], ...] = ()


def effect(producer: Callable[[], Awaitable[A]]) -> Effect[A]:
    """Wrap a zero-argument producer of an awaitable into an :class:`Effect`.

    Example:
        >>> async def fetch_user():
        ...     return {"type": "USER_LOADED", "name": "alice"}
        >>> load = effect(fetch_user)
        >>> load
        Effect(fetch_user)
    """
    return Effect(producer)


def _producer_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)
