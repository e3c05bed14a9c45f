from collections.abc import Mapping
from typing import Any

from ._typing import LoopReducer
from .effects import Effect, Loop


def loop[S, A](state: S, *effects: Effect[A]) -> Loop[S, A]:
    """Build a :class:`Loop` from a state and any number of effects."""
    return Loop(state, effects)


def resolved[A](value: A) -> Effect[A]:
    """An effect that produces ``value`` without doing any work."""

    async def _resolved() -> A:
        return value

    return Effect(_resolved)


def rejected(error: BaseException) -> Effect[Any]:
    """An effect whose production always fails with ``error``."""

    async def _rejected() -> Any:
        raise error

    return Effect(_rejected)


def combine_reducers(**reducers: LoopReducer[Any, Any]) -> LoopReducer[dict[str, Any], Any]:
    """Combine loop reducers that each own one key of a dict state.

    Every reducer is called with its own slice (``None`` when the key is
    missing) and the action. The effects of all reducers are concatenated in
    keyword order. When no slice changed, the original state object is returned.

    Example:
        >>> reducer = combine_reducers(counter=counter_reducer, log=log_reducer)
        >>> store = create_loop_store(reducer, loop({"counter": 0, "log": []}))
    """
    for key, reducer in reducers.items():
        if not callable(reducer):
            raise TypeError(f"Reducer for key {key!r} must be callable, got {reducer!r}")

    def _combined(state: Mapping[str, Any] | None, action: Any) -> Loop[dict[str, Any], Any]:
        state = state if state is not None else {}
        next_state: dict[str, Any] = dict(state)
        effects: list[Effect[Any]] = []
        changed = False
        for key, reducer in reducers.items():
            previous = state.get(key)
            result = reducer(previous, action)
            if not isinstance(result, Loop):
                raise TypeError(
                    f"Reducer for key {key!r} must return a Loop, got {type(result).__name__}"
                )
            next_state[key] = result.state
            effects.extend(result.effects)
            changed = changed or result.state is not previous
        return Loop(next_state if changed else state, tuple(effects))

    return _combined
