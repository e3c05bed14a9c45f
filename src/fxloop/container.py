"""A minimal synchronous state container.

The loop store only needs ``get_state``, ``dispatch``, ``subscribe`` and
``replace_reducer`` from the container it wraps. This module provides that
contract so the package works on its own. Any object with the same interface
can be produced by an enhancer instead.
"""

import logging
import threading
from typing import Any

from ._typing import Enhancer, Listener, Reducer, Unsubscribe

logger = logging.getLogger(__name__)


class Container[S, A]:
    """Holds one state value and replaces it by running a reducer on each action."""

    def __init__(self, reducer: Reducer[S, A], initial_state: S):
        self._reducer = reducer
        self._state = initial_state
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        self._is_dispatching = False

    def get_state(self) -> S:
        """Return the most recently committed state."""
        return self._state

    def dispatch(self, action: A) -> A:
        """Run the reducer on ``action``, commit the result and notify listeners.

        Raises:
            RuntimeError: If called while a reducer is running.
        """
        with self._lock:
            if self._is_dispatching:
                raise RuntimeError("Reducers may not dispatch actions.")
            self._is_dispatching = True
            try:
                self._state = self._reducer(self._state, action)
            finally:
                self._is_dispatching = False

        # Listeners may subscribe, unsubscribe or dispatch while being notified.
        for listener in list(self._listeners):
            listener()
        return action

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Call ``listener`` after every dispatch. Returns a function that removes it."""
        if not callable(listener):
            raise TypeError(f"Listener must be callable, got {listener!r}")
        self._listeners.append(listener)
        subscribed = True

        def unsubscribe() -> None:
            nonlocal subscribed
            if not subscribed:
                return
            subscribed = False
            self._listeners.remove(listener)

        return unsubscribe

    def replace_reducer(self, reducer: Reducer[S, A]) -> None:
        """Use ``reducer`` for every later dispatch. The current state is kept."""
        if not callable(reducer):
            raise TypeError(f"Reducer must be callable, got {reducer!r}")
        with self._lock:
            self._reducer = reducer
        logger.debug("Reducer replaced with %r", reducer)

    def __repr__(self) -> str:
        return f"Container(state={self._state!r}, listeners={len(self._listeners)})"


def create_store(
    reducer: Reducer[Any, Any], initial_state: Any, enhancer: Enhancer | None = None
) -> Container[Any, Any]:
    """Create a :class:`Container`, optionally through ``enhancer``.

    Args:
        reducer: Plain ``(state, action) -> state`` function.
        initial_state: State before the first dispatch.
        enhancer: Optional ``enhancer(create_store) -> create_store`` wrapper.
    """
    if not callable(reducer):
        raise TypeError(f"Reducer must be callable, got {reducer!r}")
    if enhancer is not None:
        if not callable(enhancer):
            raise TypeError(f"Enhancer must be callable, got {enhancer!r}")
        return enhancer(_create)(reducer, initial_state)
    return _create(reducer, initial_state)


def _create(reducer: Reducer[Any, Any], initial_state: Any) -> Container[Any, Any]:
    return Container(reducer, initial_state)
