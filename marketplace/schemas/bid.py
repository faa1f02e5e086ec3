"""Pydantic schemas for bidding, settlement and stats"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from marketplace.domain.bid_engine import minimum_bid
from marketplace.domain.lifecycle import can_bid, resolve, time_remaining_seconds
from marketplace.domain.record import AuctionRecord, AuctionStatus
from marketplace.schemas.product import BidEntryResponse


class PlaceBidRequest(BaseModel):
    """Request model for placing bid"""
    bidder_name: str = Field(..., min_length=1, max_length=255)
    bidder_email: EmailStr
    bid_amount: float = Field(..., gt=0)


class BidPlacedResponse(BaseModel):
    success: bool = True
    product_id: int
    current_price: float
    best_bidder: Optional[str]
    bid_count: int
    minimum_next_bid: float
    time_remaining_seconds: Optional[int]

    @classmethod
    def from_record(cls, record: AuctionRecord, now: datetime):
        return cls(
            product_id=record.id,
            current_price=record.current_price,
            best_bidder=record.best_bidder,
            bid_count=record.bid_count,
            minimum_next_bid=minimum_bid(record),
            time_remaining_seconds=time_remaining_seconds(record, now),
        )


class BidHistoryResponse(BaseModel):
    product_id: int
    status: AuctionStatus
    current_price: float
    best_bidder: Optional[str]
    bid_count: int
    can_bid: bool
    time_remaining_seconds: Optional[int]
    bids: List[BidEntryResponse]

    @classmethod
    def from_record(cls, record: AuctionRecord, now: datetime):
        """Bid history newest first"""
        view = resolve(record, now)
        return cls(
            product_id=view.id,
            status=view.status,
            current_price=view.current_price,
            best_bidder=view.best_bidder,
            bid_count=view.bid_count,
            can_bid=can_bid(view, now),
            time_remaining_seconds=time_remaining_seconds(view, now),
            bids=[
                BidEntryResponse(**entry.model_dump())
                for entry in reversed(view.bid_history)
            ],
        )


class WinnerReport(BaseModel):
    product_id: int
    product_name: str
    winner: str
    winner_email: Optional[str]
    winning_bid: float
    original_price: float
    bid_count: int


class EndedReport(BaseModel):
    product_id: int
    product_name: str
    outcome: str = "no bids, marked ended"


class FailureReport(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    error: str


class SettlementSummary(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    processed: int = 0
    failed: int = 0
    winners: List[WinnerReport] = Field(default_factory=list)
    ended_without_bids: List[EndedReport] = Field(default_factory=list)
    failures: List[FailureReport] = Field(default_factory=list)


class NotificationReport(BaseModel):
    product_id: int
    product_name: str
    winner_email: Optional[str]
    winning_bid: float
    seller_email: str
    already_notified: bool = False


class NotificationSummary(BaseModel):
    notified: int = 0
    failed: int = 0
    notifications: List[NotificationReport] = Field(default_factory=list)
    failures: List[FailureReport] = Field(default_factory=list)


class StatusGroup(BaseModel):
    status: AuctionStatus
    count: int
    avg_current_price: float
    total_bids: int


class BiddingStats(BaseModel):
    stats: List[StatusGroup]
    active_biddings: int
    expired_biddings: int
    reserved_products: int
    needs_processing: bool
