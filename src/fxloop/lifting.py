import threading
import warnings
from collections.abc import Iterable
from functools import wraps
from types import TracebackType
from typing import Any

from ._typing import LoopReducer, Reducer
from .effects import Effect, Loop


class EffectQueue[A]:
    """Store-owned buffer of effects waiting to be drained.

    Effects are appended to the innermost open capture frame. A capture opened
    by a nested dispatch gets its own frame, so the effects of an inner
    dispatch never leak into the batch of an outer one. Effects appended while
    no frame is open are held until the next capture absorbs them.
    """

    def __init__(self) -> None:
        self._frames: list[_Capture[A]] = []
        self._held: list[Effect[A]] = []
        self._lock = threading.Lock()

    def append(self, effects: Iterable[Effect[A]]) -> None:
        """Queue ``effects``, keeping their order."""
        effects = list(effects)
        for item in effects:
            if not isinstance(item, Effect):
                raise TypeError(f"Loop effects must be Effect instances, got {item!r}")
        with self._lock:
            if self._frames:
                self._frames[-1].effects.extend(effects)
            else:
                self._held.extend(effects)

    def capture(self) -> "_Capture[A]":
        """Open a capture frame; its ``batch`` is available after the ``with`` block.

        Example:
            >>> queue = EffectQueue()
            >>> with queue.capture() as frame:
            ...     container.dispatch(action)
            >>> frame.batch  # effects queued by that dispatch
        """
        return _Capture(self)

    @property
    def held(self) -> tuple[Effect[A], ...]:
        """Effects queued outside of any capture, waiting for the next one."""
        with self._lock:
            return tuple(self._held)

    @property
    def depth(self) -> int:
        """Number of capture frames currently open."""
        return len(self._frames)

    def __repr__(self) -> str:
        return f"EffectQueue(depth={len(self._frames)}, held={len(self._held)})"


class _Capture[A]:
    """Context manager that collects the effects of one synchronous dispatch."""

    def __init__(self, queue: EffectQueue[A]):
        self._queue = queue
        self.effects: list[Effect[A]] = []
        self.batch: list[Effect[A]] | None = None

    def __enter__(self) -> "_Capture[A]":
        queue = self._queue
        with queue._lock:
            self.effects, queue._held = queue._held, []
            queue._frames.append(self)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        queue = self._queue
        with queue._lock:
            for i in range(len(queue._frames) - 1, -1, -1):
                if queue._frames[i] is self:
                    queue._frames.pop(i)
                    break
            else:
                warnings.warn(f"Capture frame {self!r} not found on exit.", RuntimeWarning)

            effects, self.effects = self.effects, []
            if exc_type is None:
                self.batch = effects
            else:
                # The dispatch failed after its reducer ran; keep the effects for the next one.
                queue._held[:0] = effects
                self.batch = []

    def __repr__(self) -> str:
        return f"_Capture(effects={len(self.effects)})"


def lift[S](loop_reducer: LoopReducer[S, Any], queue: EffectQueue[Any]) -> Reducer[S, Any]:
    """Turn a loop reducer into a plain reducer that diverts its effects into ``queue``.

    Args:
        loop_reducer: ``(state, action) -> Loop`` function.
        queue: Queue receiving the effects of every call, in order.

    Returns:
        A ``(state, action) -> state`` function for the underlying container.

    Raises:
        TypeError: If ``loop_reducer`` is not callable, or (when called) does not return a Loop.
    """
    if not callable(loop_reducer):
        raise TypeError(f"Reducer must be callable, got {loop_reducer!r}")

    @wraps(loop_reducer)
    def _lifted(state: S, action: Any) -> S:
        result = loop_reducer(state, action)
        if not isinstance(result, Loop):
            raise TypeError(
                f"Loop reducer {getattr(loop_reducer, '__name__', loop_reducer)!r} "
                f"must return a Loop, got {type(result).__name__}"
            )
        queue.append(result.effects)
        return result.state

    return _lifted
