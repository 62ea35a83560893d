"""Tests for the session store and the background loop runner."""

import asyncio
import concurrent.futures
import threading

import pytest

from assistant.price_check import PriceCheck
from assistant.runner import AsyncRunner
from assistant.sessions import SessionStore


class StubSession:
    def __init__(self, session_id):
        self.session_id = session_id


def make_check(session_id):
    return PriceCheck(request_text=session_id, session=StubSession(session_id))


class TestSessionStore:

    def test_add_and_get(self):
        store = SessionStore()
        check = make_check("a")

        store.add(check)

        assert store.get("a") is check
        assert store.get("missing") is None
        assert len(store) == 1

    def test_oldest_evicted(self):
        store = SessionStore(max_sessions=2)
        for session_id in ("a", "b", "c"):
            store.add(make_check(session_id))

        assert store.ids() == ["b", "c"]

    def test_re_adding_refreshes_age(self):
        store = SessionStore(max_sessions=2)
        store.add(make_check("a"))
        store.add(make_check("b"))
        store.add(store.get("a"))
        store.add(make_check("c"))

        assert store.ids() == ["a", "c"]

    def test_remove(self):
        store = SessionStore()
        store.add(make_check("a"))

        assert store.remove("a") is True
        assert store.remove("a") is False

    def test_check_without_session_rejected(self):
        with pytest.raises(ValueError):
            SessionStore().add(PriceCheck(request_text="PS5", error="Search failed"))


class FakePool:
    def __init__(self):
        self.closed = 0

    async def close(self):
        self.closed += 1


class TestAsyncRunner:

    def test_jobs_share_one_pool_and_loop(self):
        pools = []

        def factory():
            pools.append(FakePool())
            return pools[-1]

        runner = AsyncRunner(pool_factory=factory, timeout=5)

        async def job(pool):
            await asyncio.sleep(0)
            return pool, threading.current_thread().name

        try:
            first_pool, thread_name = runner.run(job)
            second_pool, _ = runner.run(job)
        finally:
            runner.shutdown()

        assert first_pool is second_pool
        assert len(pools) == 1
        assert thread_name == "price-check-loop"
        assert pools[0].closed == 1
        assert runner.is_running is False

    def test_errors_propagate(self):
        runner = AsyncRunner(pool_factory=FakePool, timeout=5)

        async def job(pool):
            raise ValueError("bad job")

        try:
            with pytest.raises(ValueError):
                runner.run(job)
        finally:
            runner.shutdown()

    def test_timeout_cancels_job(self):
        runner = AsyncRunner(pool_factory=FakePool, timeout=5)
        cancelled = threading.Event()

        async def job(pool):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        try:
            with pytest.raises(concurrent.futures.TimeoutError):
                runner.run(job, timeout=0.05)
            assert cancelled.wait(2)
        finally:
            runner.shutdown()

    def test_restart_after_shutdown_uses_a_fresh_loop(self):
        runner = AsyncRunner(pool_factory=FakePool, timeout=5)

        async def job(pool):
            return asyncio.get_running_loop()

        try:
            first = runner.run(job)
            runner.shutdown()
            second = runner.run(job)
            assert runner.is_running is True
        finally:
            runner.shutdown()

        assert first is not second
        assert first.is_closed()

    def test_shutdown_is_idempotent(self):
        runner = AsyncRunner(pool_factory=FakePool)

        runner.shutdown()
        runner.run(lambda pool: asyncio.sleep(0))
        runner.shutdown()
        runner.shutdown()

        assert runner.is_running is False
