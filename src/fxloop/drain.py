"""Resolve batches of effects and feed the actions they produce back into a store.

A :class:`Drain` is a trampoline. One driver task owns every pending effect
of a dispatch cascade: it waits for the next effect to settle, feeds the
produced action back (which commits it synchronously and yields a new
batch), starts that batch and loops until nothing is pending. Recursion
depth is bounded by the number of pending effects, not by the call stack.

Feedback order is settlement order: whichever effect finishes first is fed
first. Effects that settle during the same event loop turn are fed in the
order they were started. ``Drain.fed`` records the actions as they are fed.
"""

from .effects import (
    EffectCreatorInvalidError,
    EffectExecutionFailedError,
    MissingAsyncSupportError,
)

try:
    import asyncio
except ImportError as exc:  # pragma: no cover - asyncio ships with every supported interpreter
    raise MissingAsyncSupportError("fxloop requires asyncio.") from exc

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ._typing import Feedback
from .effects import Effect

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Unit:
    """One started effect and the slot its nested results go into."""

    seq: int
    effect: Effect[Any]
    results: list[Any]
    index: int


class Drain[A]:
    """Trampolined drain of one dispatch cascade.

    Args:
        feed: Commits one action synchronously and returns the effects it queued.
        logger: Logger for failures and progress. Defaults to this module's logger.

    Calling the drain with a batch starts it and returns a future that:

    - resolves to a list aligned with the batch, where each entry is the
      nested result list of the dispatch of that effect's action;
    - fails with the first failure the driver observes. Remaining effects keep
      running and their actions are still fed, but their results are discarded.
    """

    def __init__(self, feed: Feedback[A], *, logger: logging.Logger | None = None):
        self._feed = feed
        self._logger = logger or _logger
        self._pending: dict[asyncio.Future[Any], _Unit] = {}
        self._seq = itertools.count()
        self._result: asyncio.Future[list[Any]] | None = None
        self.task: asyncio.Task[None] | None = None
        self.fed: list[A] = []

    def __call__(self, batch: Sequence[Effect[A]]) -> asyncio.Future[list[Any]]:
        if self._result is not None:
            raise RuntimeError("A drain can only be started once.")
        loop = running_loop()
        self._result = loop.create_future()
        root: list[Any] = [None] * len(batch)
        self._logger.debug("Draining %d effect(s)", len(batch))
        self._start(batch, root)
        if self._pending:
            self.task = loop.create_task(self._run(root))
        else:
            self._succeed(root)
        return self._result

    @property
    def pending(self) -> int:
        """Number of effects started but not yet settled."""
        return len(self._pending)

    async def _run(self, root: list[Any]) -> None:
        assert self._result is not None
        try:
            while self._pending:
                done, _ = await asyncio.wait(
                    set(self._pending), return_when=asyncio.FIRST_COMPLETED
                )
                for future in sorted(done, key=lambda f: self._pending[f].seq):
                    self._settle(self._pending.pop(future), future)
        except asyncio.CancelledError:
            self._result.cancel()
            raise
        except BaseException as exc:
            if not self._result.done():
                self._result.set_exception(exc)
            raise
        self._succeed(root)
        self._logger.debug("Drain finished after feeding %d action(s)", len(self.fed))

    def _start(self, batch: Sequence[Effect[A]], results: list[Any]) -> None:
        for index, item in enumerate(batch):
            try:
                awaitable = item.resolve()
            except EffectCreatorInvalidError as exc:
                self._fail(exc)
                continue
            except Exception as exc:
                self._fail_execution(item, exc)
                continue
            future = asyncio.ensure_future(awaitable)
            self._pending[future] = _Unit(next(self._seq), item, results, index)

    def _settle(self, unit: _Unit, future: asyncio.Future[Any]) -> None:
        try:
            action = future.result()
        except EffectCreatorInvalidError as exc:
            # Raised lazily by a mapped effect whose source producer is invalid.
            self._fail(exc)
            return
        except (Exception, asyncio.CancelledError) as exc:
            self._fail_execution(unit.effect, exc)
            return

        self.fed.append(action)
        try:
            batch = self._feed(action)
        except Exception as exc:
            self._fail_execution(unit.effect, exc)
            return

        children: list[Any] = [None] * len(batch)
        unit.results[unit.index] = children
        self._start(batch, children)

    def _fail_execution(self, effect: Effect[Any], exc: BaseException) -> None:
        self._logger.error("Effect %r failed", effect, exc_info=exc)
        error = EffectExecutionFailedError(effect, exc)
        error.__cause__ = exc
        self._fail(error)

    def _fail(self, error: BaseException) -> None:
        assert self._result is not None
        if self._result.done():
            self._logger.debug("Drain already settled, discarding %r", error)
            return
        self._result.set_exception(error)

    def _succeed(self, root: list[Any]) -> None:
        assert self._result is not None
        if not self._result.done():
            self._result.set_result(root)


def drain[A](
    batch: Sequence[Effect[A]],
    feed: Feedback[A],
    *,
    logger: logging.Logger | None = None,
) -> asyncio.Future[list[Any]]:
    """Start draining ``batch``, feeding every produced action to ``feed``.

    Shorthand for ``Drain(feed, logger=logger)(batch)``.
    """
    return Drain(feed, logger=logger)(batch)


def running_loop() -> asyncio.AbstractEventLoop:
    """Return the running event loop.

    Raises:
        MissingAsyncSupportError: If called outside of a running event loop.
    """
    try:
        return asyncio.get_running_loop()
    except RuntimeError as exc:
        raise MissingAsyncSupportError(
            "Effects can only be drained while an asyncio event loop is running."
        ) from exc
