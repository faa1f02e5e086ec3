"""
Scheduler Entry Point

Usage:
    python -m worker.run_worker process   # settle expired auctions
    python -m worker.run_worker notify    # notify reserved winners
    python -m worker.run_worker stats     # print bidding statistics
    python -m worker.run_worker full      # process + notify + stats
    python -m worker.run_worker run       # loop every SETTLEMENT_INTERVAL_SECONDS
"""
import asyncio
import json
import logging
import signal
import sys

from marketplace.core.logging_config import setup_logging
from marketplace.infrastructure.database import SessionLocal, check_db_connection, init_db
from marketplace.services import NotificationService, SettlementService, SettlementWorker, StatsService
from marketplace.services.settlement_worker import default_notifier

logger = logging.getLogger("worker")

USAGE = """Usage: python -m worker.run_worker [process|stats|notify|full|run]
  process - Settle expired auctions
  stats   - Show bidding statistics
  notify  - Notify winners
  full    - Run complete cycle
  run     - Run the periodic scheduler"""


def _print(title: str, payload) -> None:
    print(f"=== {title} ===")
    print(json.dumps(payload, indent=2, default=str))


def run_command(command: str) -> int:
    if command == "run":
        return asyncio.run(run_forever())

    db = SessionLocal()
    try:
        if command == "process":
            _print("SETTLEMENT SUMMARY", SettlementService.run_settlement_sweep(db).model_dump(mode="json"))
        elif command == "stats":
            _print("BIDDING STATISTICS", StatsService.get_bidding_stats(db).model_dump(mode="json"))
        elif command == "notify":
            summary = NotificationService.run_notification_sweep(db, default_notifier())
            _print("NOTIFICATION SUMMARY", summary.model_dump(mode="json"))
        elif command == "full":
            _print("SETTLEMENT SUMMARY", SettlementService.run_settlement_sweep(db).model_dump(mode="json"))
            summary = NotificationService.run_notification_sweep(db, default_notifier())
            _print("NOTIFICATION SUMMARY", summary.model_dump(mode="json"))
            _print("FINAL STATISTICS", StatsService.get_bidding_stats(db).model_dump(mode="json"))
        else:
            print(USAGE)
            return 2
    finally:
        db.close()
    return 0


async def run_forever() -> int:
    worker = SettlementWorker()
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await worker.start()
    await stop.wait()
    logger.info("⚠️  Shutdown signal received...")
    await worker.stop()

    logger.info(f"🛑 Scheduler stopped: {worker.runs} run(s), {worker.skipped} skipped, {worker.errors} error(s)")
    return 0


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    command = argv[0] if argv else "process"

    setup_logging()

    # Cannot reach the database: abort
    try:
        check_db_connection()
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        return 1

    init_db()
    return run_command(command)


if __name__ == "__main__":
    sys.exit(main())
