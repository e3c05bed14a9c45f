"""Declarative side effects for reducer-based state containers.

A loop reducer returns the next state together with the effects to run after
it. The store commits the state synchronously, runs the effects on the asyncio
event loop, and dispatches the actions they produce, until no effects remain.
Reducers stay pure: "fetch this, then dispatch that" is returned as data.

Example:

>>> import asyncio
>>> import fxloop as fx
>>>
>>> async def save(count):
...     return {"type": "SAVED", "count": count}
>>>
>>> def reducer(state, action):
...     match action["type"]:
...         case "INCREMENT":
...             count = state["count"] + 1
...             return fx.loop({**state, "count": count}, fx.effect(lambda: save(count)))
...         case "SAVED":
...             return fx.loop({**state, "saved": action["count"]})
...     return fx.loop(state)
>>>
>>> async def main():
...     store = fx.create_loop_store(reducer, fx.loop({"count": 0, "saved": None}))
...     pending = store.dispatch({"type": "INCREMENT"})
...     print(store.get_state())  # committed before any effect runs
...     await pending
...     print(store.get_state())
>>>
>>> asyncio.run(main())
{'count': 1, 'saved': None}
{'count': 1, 'saved': 1}
"""

from .__version__ import __version__
from .container import Container, create_store
from .drain import Drain
from .effects import (
    Effect,
    EffectCreatorInvalidError,
    EffectExecutionFailedError,
    Loop,
    MissingAsyncSupportError,
    effect,
)
from .lifting import EffectQueue, lift
from .store import Store, create_loop_store
from .util import combine_reducers, loop, rejected, resolved

__all__ = [
    "Container",
    "Drain",
    "Effect",
    "EffectCreatorInvalidError",
    "EffectExecutionFailedError",
    "EffectQueue",
    "Loop",
    "MissingAsyncSupportError",
    "Store",
    "__version__",
    "combine_reducers",
    "create_loop_store",
    "create_store",
    "effect",
    "lift",
    "loop",
    "rejected",
    "resolved",
]
