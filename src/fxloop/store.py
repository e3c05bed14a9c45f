import asyncio
import logging
from typing import Any

from ._typing import Enhancer, Listener, LoopReducer, Unsubscribe
from .container import create_store
from .drain import Drain, running_loop
from .effects import Effect, Loop
from .lifting import EffectQueue, lift

_logger = logging.getLogger(__name__)


class Store[S, A]:
    """A state container whose reducers return effects alongside the next state.

    Every ``dispatch`` commits the reducer's state synchronously, then runs the
    effects the reducer returned and dispatches the actions they produce, until
    no effects remain. The future returned by ``dispatch`` settles when that
    whole cascade has settled.

    Use :func:`create_loop_store` to build one.
    """

    def __init__(
        self,
        reducer: LoopReducer[S, A],
        initial: Loop[S, A],
        enhancer: Enhancer | None = None,
        *,
        logger: logging.Logger | None = None,
    ):
        if not isinstance(initial, Loop):
            raise TypeError(f"Initial model must be a Loop, got {type(initial).__name__}")
        self._logger = logger or _logger
        self._queue: EffectQueue[A] = EffectQueue()
        self._container = create_store(lift(reducer, self._queue), initial.state, enhancer)
        self._tasks: set[asyncio.Task[None]] = set()
        self.initial_drain: asyncio.Future[list[Any]] | None = None

        if initial.effects:
            # Not awaited: the store is usable before the initial effects settle.
            self.initial_drain = self._drain(list(initial.effects))
            self.initial_drain.add_done_callback(self._observe_initial_drain)

    def get_state(self) -> S:
        """Return the most recently committed state."""
        return self._container.get_state()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Call ``listener`` after every committed action. Returns an unsubscribe function."""
        return self._container.subscribe(listener)

    def dispatch(self, action: A) -> asyncio.Future[list[Any]]:
        """Commit ``action`` and start running the effects its reducer returned.

        The new state is visible through :meth:`get_state` as soon as this
        returns. Reducer exceptions propagate from this call unchanged.

        Returns:
            A future resolving to one entry per effect, each entry being the
            (nested) result of dispatching that effect's action. It fails with
            ``EffectExecutionFailedError`` or ``EffectCreatorInvalidError`` as
            soon as the first failure in the cascade is observed.

        Raises:
            MissingAsyncSupportError: If no event loop is running.
        """
        running_loop()
        return self._drain(self._commit(action))

    def replace_reducer(self, reducer: LoopReducer[S, A]) -> None:
        """Use ``reducer`` for later dispatches. Effects already queued are kept."""
        self._container.replace_reducer(lift(reducer, self._queue))

    async def join(self) -> None:
        """Wait until every drain started by this store has finished running.

        Unlike awaiting a dispatch future, this also waits for effects that
        keep running after their cascade has already failed, and never raises
        their failures.
        """
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    def _commit(self, action: A) -> list[Effect[A]]:
        with self._queue.capture() as frame:
            self._container.dispatch(action)
        return frame.batch or []

    def _drain(self, batch: list[Effect[A]]) -> asyncio.Future[list[Any]]:
        drain = Drain(self._commit, logger=self._logger)
        result = drain(batch)
        if drain.task is not None:
            self._tasks.add(drain.task)
            drain.task.add_done_callback(self._tasks.discard)
        return result

    def _observe_initial_drain(self, future: asyncio.Future[list[Any]]) -> None:
        # Nobody awaits the initial drain and its failures were logged by the drain.
        if not future.cancelled():
            future.exception()

    def __repr__(self) -> str:
        return f"Store(state={self.get_state()!r}, running={len(self._tasks)})"


def create_loop_store[S, A](
    reducer: LoopReducer[S, A],
    initial: Loop[S, A],
    enhancer: Enhancer | None = None,
    *,
    logger: logging.Logger | None = None,
) -> Store[S, A]:
    """Create a :class:`Store` from a loop reducer and an initial :class:`Loop`.

    The initial effects start draining right away but are not awaited, so a
    running event loop is required when ``initial.effects`` is not empty.

    Args:
        reducer: ``(state, action) -> Loop`` function.
        initial: Initial state and the effects to run at startup.
        enhancer: Optional wrapper around the underlying container factory.
        logger: Logger for effect failures. Defaults to ``fxloop.store``'s logger.

    Raises:
        MissingAsyncSupportError: If initial effects are given outside a running event loop.
    """
    return Store(reducer, initial, enhancer, logger=logger)
