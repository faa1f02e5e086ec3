"""
Bid API Routes

Handles:
- Placing bids
- Bid history
- Active auctions and reservations per winner
"""
from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr
from sqlalchemy.orm import Session

from marketplace.api.dependencies import get_db
from marketplace.schemas import (
    BidHistoryResponse,
    BidPlacedResponse,
    PlaceBidRequest,
    ProductListResponse,
    ProductResponse,
)
from marketplace.services import BidService

router = APIRouter(prefix="/bids", tags=["bids"])


@router.post("/products/{product_id}", response_model=BidPlacedResponse)
async def place_bid(product_id: int, request: PlaceBidRequest, db: Session = Depends(get_db)):
    """
    Place a bid

    Rejections come back as 400 with an `error` code: not_biddable,
    auction_closed, self_bid_forbidden or bid_too_low (with `minimum`).
    A lost write race returns 409 concurrent_modification, retryable.
    """
    record, now = BidService.place_bid(
        db,
        product_id=product_id,
        bidder_name=request.bidder_name,
        bidder_email=request.bidder_email,
        amount=request.bid_amount,
    )
    return BidPlacedResponse.from_record(record, now)


@router.get("/products/{product_id}/history", response_model=BidHistoryResponse)
async def get_bid_history(product_id: int, db: Session = Depends(get_db)):
    """Bid history newest first, with current status and price"""
    record, now = BidService.get_bid_history(db, product_id)
    return BidHistoryResponse.from_record(record, now)


@router.get("/active", response_model=ProductListResponse)
async def list_active_auctions(limit: int = Query(50, ge=1, le=200), db: Session = Depends(get_db)):
    records, now = BidService.list_active_auctions(db, limit=limit)
    return ProductListResponse(
        total=len(records),
        products=[ProductResponse.from_record(record, now) for record in records],
    )


@router.get("/reserved", response_model=ProductListResponse)
async def list_reserved_for_user(email: EmailStr, db: Session = Depends(get_db)):
    """Products reserved for the winner with this email"""
    records, now = BidService.list_reserved_for(db, email)
    return ProductListResponse(
        total=len(records),
        products=[ProductResponse.from_record(record, now) for record in records],
    )
