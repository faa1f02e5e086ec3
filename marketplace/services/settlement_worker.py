"""
Background worker that runs the settlement and notification sweeps on a timer
"""
import asyncio
import logging
from typing import Dict, Optional

from marketplace.core.config import get_settings
from marketplace.infrastructure.database import SessionLocal
from marketplace.infrastructure.lock import SweepLock
from marketplace.infrastructure.notifier import RedisWinnerNotifier, WinnerNotifier
from marketplace.infrastructure.redis_client import get_redis_client
from marketplace.services.notification_service import NotificationService
from marketplace.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

LOCK_NAME = "settlement"


def default_notifier() -> WinnerNotifier:
    return RedisWinnerNotifier(get_redis_client(), get_settings().WINNER_CHANNEL)


def run_full_cycle(notifier: WinnerNotifier, session_factory=SessionLocal) -> Dict:
    """Settle expired auctions, then notify winners, in one session"""
    db = session_factory()
    try:
        settlement = SettlementService.run_settlement_sweep(db)
        notification = NotificationService.run_notification_sweep(db, notifier)
    finally:
        db.close()

    return {
        "settlement": settlement.model_dump(mode="json"),
        "notification": notification.model_dump(mode="json"),
    }


class SettlementWorker:
    """
    Periodic settlement owner

    Overlap across processes is prevented with a Redis lock: a tick
    that finds the lock held is skipped. Each tick is bounded by
    SETTLEMENT_BATCH_TIMEOUT_SECONDS. A sweep thread that outlives its
    timeout keeps the lock until it finishes; the lock TTL bounds a
    thread that never does.
    """

    def __init__(
        self,
        notifier: Optional[WinnerNotifier] = None,
        lock: Optional[SweepLock] = None,
        session_factory=SessionLocal,
    ):
        settings = get_settings()
        self.interval = settings.SETTLEMENT_INTERVAL_SECONDS
        self.timeout = settings.SETTLEMENT_BATCH_TIMEOUT_SECONDS
        self.notifier = notifier
        self.lock = lock
        self.session_factory = session_factory
        self.running = False
        self.task = None

        # Statistics
        self.runs = 0
        self.skipped = 0
        self.errors = 0

    def _ensure_collaborators(self):
        if self.notifier is None:
            self.notifier = default_notifier()
        if self.lock is None:
            self.lock = SweepLock(get_redis_client(), expire_ms=get_settings().SWEEP_LOCK_EXPIRE_MS)

    async def start(self):
        """Start the background worker"""
        if self.running:
            logger.warning("⚠️  Settlement worker already running")
            return

        self._ensure_collaborators()
        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info(f"✅ Settlement worker started (interval: {self.interval}s)")

    async def stop(self):
        """Stop the background worker"""
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("🛑 Settlement worker stopped")

    async def run_once(self) -> Optional[Dict]:
        """
        One tick: take the lock, sweep, release

        Returns the cycle report, or None when skipped.
        """
        self._ensure_collaborators()

        request_id = self.lock.acquire(LOCK_NAME)
        if request_id is None:
            self.skipped += 1
            logger.info("⏭️  Settlement sweep already running elsewhere, skipping tick")
            return None

        def sweep():
            # Released from the sweep thread: an overrunning sweep holds the lock until it ends
            try:
                return run_full_cycle(self.notifier, self.session_factory)
            finally:
                self.lock.release(LOCK_NAME, request_id)

        report = await asyncio.wait_for(asyncio.to_thread(sweep), timeout=self.timeout)
        self.runs += 1
        return report

    async def _run(self):
        """Main worker loop"""
        while self.running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except asyncio.TimeoutError:
                self.errors += 1
                logger.error(f"❌ Settlement sweep exceeded {self.timeout}s")
            except Exception as e:
                self.errors += 1
                logger.error(f"❌ Error in settlement worker: {e}")

            await asyncio.sleep(self.interval)


# Global worker instance
settlement_worker = SettlementWorker()


async def start_settlement_worker():
    """Start the settlement worker"""
    await settlement_worker.start()


async def stop_settlement_worker():
    """Stop the settlement worker"""
    await settlement_worker.stop()
