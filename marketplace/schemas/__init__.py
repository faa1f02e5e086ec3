"""
Pydantic request/response schemas
"""
from marketplace.schemas.product import (
    BidEntryResponse,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    PurchaseRequest,
)
from marketplace.schemas.bid import (
    BiddingStats,
    BidHistoryResponse,
    BidPlacedResponse,
    EndedReport,
    FailureReport,
    NotificationReport,
    NotificationSummary,
    PlaceBidRequest,
    SettlementSummary,
    StatusGroup,
    WinnerReport,
)

__all__ = [
    "BidEntryResponse",
    "ProductCreate",
    "ProductListResponse",
    "ProductResponse",
    "ProductUpdate",
    "PurchaseRequest",
    "BiddingStats",
    "BidHistoryResponse",
    "BidPlacedResponse",
    "EndedReport",
    "FailureReport",
    "NotificationReport",
    "NotificationSummary",
    "PlaceBidRequest",
    "SettlementSummary",
    "StatusGroup",
    "WinnerReport",
]
