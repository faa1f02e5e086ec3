"""
Admin API Routes - Settlement, Notifications and Monitoring
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.dependencies import get_db, get_notifier
from marketplace.infrastructure.database import check_db_connection
from marketplace.infrastructure.notifier import WinnerNotifier
from marketplace.infrastructure.redis_client import test_redis_connection
from marketplace.schemas import (
    BiddingStats,
    NotificationReport,
    NotificationSummary,
    ProductResponse,
    SettlementSummary,
)
from marketplace.services import BidService, NotificationService, SettlementService, StatsService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/settlement/run", response_model=SettlementSummary)
async def run_settlement(db: Session = Depends(get_db)):
    """Settle all expired auctions now"""
    return SettlementService.run_settlement_sweep(db)


@router.post("/notifications/run", response_model=NotificationSummary)
async def run_notifications(db: Session = Depends(get_db), notifier: WinnerNotifier = Depends(get_notifier)):
    """Notify every reserved winner not yet notified"""
    return NotificationService.run_notification_sweep(db, notifier)


@router.post("/products/{product_id}/notify", response_model=NotificationReport)
async def notify_winner(
    product_id: int,
    db: Session = Depends(get_db),
    notifier: WinnerNotifier = Depends(get_notifier),
):
    return NotificationService.notify_winner(db, product_id, notifier)


@router.post("/products/{product_id}/reserve", response_model=ProductResponse)
async def reserve_for_winner(product_id: int, db: Session = Depends(get_db)):
    """Reserve one product for its winner outside the batch sweep"""
    record, now = BidService.reserve(db, product_id)
    return ProductResponse.from_record(record, now)


@router.get("/stats", response_model=BiddingStats)
async def get_stats(db: Session = Depends(get_db)):
    """Auction counts by status; `needs_processing` means a sweep is due"""
    return StatsService.get_bidding_stats(db)


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """System health check"""
    try:
        check_db_connection(db.get_bind())
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    redis_status = "healthy" if test_redis_connection() else "unhealthy"
    overall = "healthy" if db_status == "healthy" and redis_status == "healthy" else "degraded"

    return {
        "status": overall,
        "components": {
            "database": db_status,
            "redis": redis_status,
        },
    }
