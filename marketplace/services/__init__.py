"""
Business Logic Services
"""
from marketplace.services.product_service import ProductService
from marketplace.services.bid_service import BidService
from marketplace.services.settlement_service import SettlementService
from marketplace.services.notification_service import NotificationService
from marketplace.services.stats_service import StatsService
from marketplace.services.settlement_worker import (
    SettlementWorker,
    start_settlement_worker,
    stop_settlement_worker,
)

__all__ = [
    "ProductService",
    "BidService",
    "SettlementService",
    "NotificationService",
    "StatsService",
    "SettlementWorker",
    "start_settlement_worker",
    "stop_settlement_worker",
]
