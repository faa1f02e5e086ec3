"""Pydantic schemas for Product resources"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from marketplace.domain.lifecycle import resolve, time_remaining_seconds
from marketplace.domain.record import AuctionRecord, AuctionStatus, Category, as_naive_utc


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: Category
    image: str = Field(..., pattern=r"^https?://.+")
    description: str = Field(..., min_length=10, max_length=1000)
    current_price: float = Field(..., ge=0.01)
    original_price: Optional[float] = Field(None, ge=0.01)
    color: str = Field("", max_length=50)
    stock: int = Field(1, ge=1)
    owner_id: str = Field(..., min_length=1)
    owner_email: EmailStr

    auction_enabled: bool = False
    duration_days: Optional[int] = Field(None, ge=1, le=30)
    end_time: Optional[datetime] = None
    min_bid_increment: Optional[float] = Field(None, gt=0)

    @field_validator("end_time")
    @classmethod
    def end_time_as_utc(cls, v):
        return as_naive_utc(v)


class ProductUpdate(BaseModel):
    """
    Arbitrary patch; bid-controlled keys are accepted here but dropped
    by the service before anything is written
    """
    model_config = {"extra": "allow"}

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[Category] = None
    image: Optional[str] = Field(None, pattern=r"^https?://.+")
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    color: Optional[str] = Field(None, max_length=50)
    stock: Optional[int] = Field(None, ge=0)
    current_price: Optional[float] = Field(None, ge=0.01)
    original_price: Optional[float] = Field(None, ge=0.01)
    auction_enabled: Optional[bool] = None
    duration_days: Optional[int] = Field(None, ge=1, le=30)
    end_time: Optional[datetime] = None
    min_bid_increment: Optional[float] = Field(None, gt=0)

    @field_validator("end_time")
    @classmethod
    def end_time_as_utc(cls, v):
        return as_naive_utc(v)


class PurchaseRequest(BaseModel):
    quantity: int = Field(1, ge=1)


class BidEntryResponse(BaseModel):
    bidder_name: str
    bidder_email: str
    amount: float
    placed_at: datetime


class ProductResponse(BaseModel):
    id: int
    owner_id: str
    owner_email: str
    name: str
    category: Category
    image: str
    description: str
    color: str
    stock: int
    original_price: float
    current_price: float
    auction_enabled: bool
    duration_days: Optional[int] = None
    end_time: Optional[datetime] = None
    min_bid_increment: float
    status: AuctionStatus
    best_bidder: Optional[str] = None
    best_bidder_email: Optional[str] = None
    bid_count: int = 0
    winner_notified: bool = False
    reserved_for_winner: bool = False
    reserved_at: Optional[datetime] = None
    time_remaining_seconds: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: AuctionRecord, now: datetime):
        """Convert a record to a response, resolving an expired auction for display"""
        view = resolve(record, now)
        return cls(
            id=view.id,
            owner_id=view.owner_id,
            owner_email=view.owner_email,
            name=view.name,
            category=view.category,
            image=view.image,
            description=view.description,
            color=view.color,
            stock=view.stock,
            original_price=view.original_price,
            current_price=view.current_price,
            auction_enabled=view.auction_enabled,
            duration_days=view.duration_days,
            end_time=view.end_time,
            min_bid_increment=view.min_bid_increment,
            status=view.status,
            best_bidder=view.best_bidder,
            best_bidder_email=view.best_bidder_email,
            bid_count=view.bid_count,
            winner_notified=view.winner_notified,
            reserved_for_winner=view.reserved_for_winner,
            reserved_at=view.reserved_at,
            time_remaining_seconds=time_remaining_seconds(view, now),
            created_at=view.created_at,
            updated_at=view.updated_at,
        )


class ProductListResponse(BaseModel):
    total: int
    products: List[ProductResponse]
