"""Functional tests for the end-to-end dispatch scenarios."""

import asyncio
import logging

import pytest

from fxloop import (
    EffectExecutionFailedError,
    create_loop_store,
    effect,
    loop,
    rejected,
    resolved,
)


class Failure(Exception):
    """Stand-in for an application error raised by an effect."""


@pytest.mark.asyncio
async def test_increment_then_logged():
    """INCREMENT commits synchronously and settles after LOGGED is dispatched."""
    dispatched: list[str] = []

    def reducer(state, action):
        dispatched.append(action["type"])
        if action["type"] == "INCREMENT":
            return loop(state + 1, resolved({"type": "LOGGED"}))
        return loop(state)

    store = create_loop_store(reducer, loop(0))
    pending = store.dispatch({"type": "INCREMENT"})

    assert store.get_state() == 1
    assert dispatched == ["INCREMENT"]

    assert await pending == [[]]
    assert dispatched == ["INCREMENT", "LOGGED"]


@pytest.mark.asyncio
async def test_initial_failure_is_logged_not_raised(caplog):
    """A failing initial effect does not block construction or crash the loop."""
    boom = Failure("boom")

    def reducer(state, action):
        return loop(state)

    with caplog.at_level(logging.ERROR, logger="fxloop.store"):
        store = create_loop_store(reducer, loop(0, rejected(boom)))
        assert store.get_state() == 0
        assert store.initial_drain is not None
        assert not store.initial_drain.done()

        await store.join()

    error = store.initial_drain.exception()
    assert isinstance(error, EffectExecutionFailedError)
    assert error.cause is boom
    assert any(record.exc_info and record.exc_info[1] is boom for record in caplog.records)

    # The store is still usable afterwards.
    assert await store.dispatch({"type": "NOOP"}) == []


@pytest.mark.asyncio
async def test_feedback_follows_settlement_order():
    """The effect that settles first is dispatched first, regardless of position."""
    dispatched: list[str] = []

    def after(delay, action_type):
        async def _after():
            await asyncio.sleep(delay)
            return {"type": action_type}

        return effect(_after)

    def reducer(state, action):
        dispatched.append(action["type"])
        if action["type"] == "START":
            return loop(state, after(0.01, "A"), after(0.001, "B"))
        return loop(state)

    store = create_loop_store(reducer, loop(None))
    result = await store.dispatch({"type": "START"})

    assert dispatched == ["START", "B", "A"]
    assert result == [[], []]


@pytest.mark.asyncio
async def test_dispatch_settles_after_every_effect():
    """The dispatch future is not settled while any effect of the cascade is pending."""
    gate = asyncio.Event()

    async def wait_for_gate():
        await gate.wait()
        return {"type": "OPENED"}

    def reducer(state, action):
        match action["type"]:
            case "WAIT":
                return loop(state, resolved({"type": "QUICK"}), effect(wait_for_gate))
            case "QUICK" | "OPENED":
                return loop(state + [action["type"]])
        return loop(state)

    store = create_loop_store(reducer, loop([]))
    pending = store.dispatch({"type": "WAIT"})

    await asyncio.sleep(0.005)
    assert store.get_state() == ["QUICK"]
    assert not pending.done()

    gate.set()
    assert await pending == [[], []]
    assert store.get_state() == ["QUICK", "OPENED"]
