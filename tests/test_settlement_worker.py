"""
Settlement worker and sweep lock tests
"""
import asyncio
import threading
from datetime import timedelta

import pytest

from marketplace.domain.record import AuctionStatus
from marketplace.infrastructure.lock import SweepLock
from marketplace.infrastructure.repository import ProductRepository
from marketplace.services import SettlementWorker
from marketplace.services import settlement_worker as worker_module
from tests.conftest import FakeRedis


class TestSweepLock:
    def test_second_holder_is_refused(self):
        lock = SweepLock(FakeRedis())

        first = lock.acquire("settlement")
        second = lock.acquire("settlement")

        assert first is not None
        assert second is None

    def test_released_by_owner(self):
        redis = FakeRedis()
        lock = SweepLock(redis)
        token = lock.acquire("settlement")

        lock.release("settlement", token)

        assert redis.store == {}
        assert lock.acquire("settlement") is not None

    def test_release_ignores_foreign_token(self):
        redis = FakeRedis()
        lock = SweepLock(redis)
        token = lock.acquire("settlement")

        lock.release("settlement", "someone-else")

        assert redis.store[SweepLock.key_for("settlement")] == token


class TestSettlementWorker:
    def test_run_once_settles_and_notifies(self, db, session_factory, notifier, add_auction):
        product = add_auction(ended_ago=timedelta(hours=1), bids=[("Ana", "ana@example.com", 110.0)])
        worker = SettlementWorker(notifier=notifier, lock=SweepLock(FakeRedis()), session_factory=session_factory)

        report = asyncio.run(worker.run_once())

        assert report["settlement"]["processed"] == 1
        assert report["notification"]["notified"] == 1
        assert notifier.sent == [product.id]
        record = ProductRepository.get(db, product.id)
        assert record.status == AuctionStatus.RESERVED
        assert record.winner_notified is True
        assert worker.runs == 1

    def test_tick_skipped_when_lock_held(self, session_factory, notifier):
        lock = SweepLock(FakeRedis())
        lock.acquire("settlement")
        worker = SettlementWorker(notifier=notifier, lock=lock, session_factory=session_factory)

        report = asyncio.run(worker.run_once())

        assert report is None
        assert worker.skipped == 1
        assert worker.runs == 0
        assert notifier.sent == []

    def test_overrunning_sweep_keeps_lock_until_done(self, notifier, monkeypatch):
        """A timed-out sweep still blocks the next tick while its thread runs"""
        finish = threading.Event()
        finished = threading.Event()

        def slow_cycle(notifier, session_factory):
            finish.wait(5)
            finished.set()
            return {}

        monkeypatch.setattr(worker_module, "run_full_cycle", slow_cycle)
        redis = FakeRedis()
        worker = SettlementWorker(notifier=notifier, lock=SweepLock(redis))
        worker.timeout = 0.05
        key = SweepLock.key_for("settlement")

        async def scenario():
            with pytest.raises(asyncio.TimeoutError):
                await worker.run_once()
            held_after_timeout = key in redis.store
            next_tick = await worker.run_once()

            finish.set()
            await asyncio.to_thread(finished.wait, 5)
            for _ in range(100):
                if key not in redis.store:
                    break
                await asyncio.sleep(0.01)
            return held_after_timeout, next_tick

        held_after_timeout, next_tick = asyncio.run(scenario())

        assert held_after_timeout is True
        assert next_tick is None
        assert worker.skipped == 1
        assert key not in redis.store
