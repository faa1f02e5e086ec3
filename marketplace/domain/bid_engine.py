"""
Bid Engine

Decides whether a bid may be placed and what placing it does to the
record. Also owns the other rules that guard bid-controlled state:
patch sanitization, direct purchase, cancellation and deletion.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from marketplace.domain.errors import (
    AuctionClosed,
    AuctionInProgress,
    BidTooLow,
    InvalidProductData,
    NotBiddable,
    PurchaseNotAllowed,
    SelfBidForbidden,
)
from marketplace.domain.lifecycle import is_expired
from marketplace.domain.record import AuctionRecord, AuctionStatus, BidEntry, as_naive_utc

# Float tolerance on the minimum-bid comparison
EPSILON = 1e-9

# Never writable through a patch
BID_CONTROLLED_FIELDS = frozenset({
    "id",
    "version",
    "owner_id",
    "owner_email",
    "status",
    "best_bidder",
    "best_bidder_email",
    "bid_history",
    "winner_notified",
    "reserved_for_winner",
    "reserved_at",
    "created_at",
    "updated_at",
})

# Fields an owner may change through an update
EDITABLE_FIELDS = frozenset({
    "name",
    "category",
    "image",
    "description",
    "color",
    "stock",
    "original_price",
    "current_price",
    "auction_enabled",
    "duration_days",
    "end_time",
    "min_bid_increment",
})

# Frozen once the first bid is in
FROZEN_AFTER_FIRST_BID = frozenset({
    "auction_enabled",
    "current_price",
    "original_price",
    "duration_days",
    "end_time",
    "min_bid_increment",
})


def minimum_bid(record: AuctionRecord) -> float:
    return record.current_price + record.min_bid_increment


def place_bid(
    record: AuctionRecord,
    bidder_name: str,
    bidder_email: str,
    amount: float,
    now: datetime,
) -> AuctionRecord:
    """
    Validate a bid and return the record with the bid applied

    Checks, in order:
    1. auctioning enabled, stock left, and (while still active) the
       end time not reached -> NotBiddable
    2. status is active -> AuctionClosed
    3. bidder is not the owner -> SelfBidForbidden
    4. amount >= current price + minimum increment -> BidTooLow
    """
    closed = record.status != AuctionStatus.ACTIVE

    if not record.auction_enabled:
        raise NotBiddable("Bidding is not enabled for this product")
    if record.stock <= 0:
        raise NotBiddable("Product is out of stock")
    if not closed and is_expired(record, now):
        raise NotBiddable("Bidding period has expired")

    if closed:
        raise AuctionClosed(f"Auction is {record.status.value}")

    if bidder_email.strip().lower() == record.owner_email.strip().lower():
        raise SelfBidForbidden()

    required = minimum_bid(record)
    if amount is None or amount <= 0 or amount < required - EPSILON:
        raise BidTooLow(minimum=required)

    entry = BidEntry(
        bidder_name=bidder_name,
        bidder_email=bidder_email,
        amount=amount,
        placed_at=now,
    )
    return record.model_copy(update={
        "current_price": amount,
        "best_bidder": bidder_name,
        "best_bidder_email": bidder_email,
        "bid_history": record.bid_history + (entry,),
        "updated_at": now,
    })


def sanitize_patch(record: AuctionRecord, patch: Dict[str, Any]) -> Dict[str, Any]:
    """Drop fields a plain update may not touch"""
    blocked = set(BID_CONTROLLED_FIELDS)
    if record.bid_count > 0:
        blocked |= FROZEN_AFTER_FIRST_BID
    if record.reserved_for_winner:
        # Held for the winner
        blocked.add("stock")
    return {key: value for key, value in patch.items() if key not in blocked}


def apply_patch(
    record: AuctionRecord,
    patch: Dict[str, Any],
    now: datetime,
    increment_bounds: Tuple[float, float] = (0.01, 1000.0),
) -> AuctionRecord:
    """
    Sanitize and apply an owner patch

    A new `duration_days` without an explicit `end_time` restarts the
    clock from `now`. Stock patched to 0 marks the product sold.

    Raises:
        InvalidProductData
    """
    allowed = sanitize_patch(record, patch)
    update = {key: value for key, value in allowed.items() if key in EDITABLE_FIELDS}
    if not update:
        return record

    if "duration_days" in update and update["duration_days"] is not None and "end_time" not in update:
        update["end_time"] = now + timedelta(days=update["duration_days"])

    if isinstance(update.get("end_time"), datetime):
        update["end_time"] = as_naive_utc(update["end_time"])

    # model_copy skips validation
    try:
        candidate = AuctionRecord.model_validate({**record.model_dump(), **update})
    except ValidationError as e:
        raise InvalidProductData([
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]) from e

    errors: List[str] = []

    if candidate.auction_enabled and candidate.status == AuctionStatus.ACTIVE:
        if candidate.end_time is None or candidate.end_time <= now:
            errors.append("end_time: must be in the future")
        low, high = increment_bounds
        if not low <= candidate.min_bid_increment <= high:
            errors.append(f"min_bid_increment: must be between {low} and {high}")
    if candidate.stock < 0:
        errors.append("stock: must not be negative")
    if errors:
        raise InvalidProductData(errors)

    final: Dict[str, Any] = {"updated_at": now}
    if candidate.stock == 0 and candidate.status != AuctionStatus.SOLD:
        final["status"] = AuctionStatus.SOLD
    return candidate.model_copy(update=final)


def purchase(record: AuctionRecord, quantity: int, now: datetime) -> AuctionRecord:
    """
    Direct purchase: decrement stock, `sold` once it reaches 0

    Raises:
        PurchaseNotAllowed: reserved, sold or cancelled, or not enough stock
    """
    if quantity < 1:
        raise PurchaseNotAllowed("Quantity must be at least 1")
    if record.reserved_for_winner or record.status in (
        AuctionStatus.RESERVED, AuctionStatus.SOLD, AuctionStatus.CANCELLED
    ):
        raise PurchaseNotAllowed(f"Product is {record.status.value} and cannot be purchased")
    if record.stock < quantity:
        raise PurchaseNotAllowed(f"Only {record.stock} item(s) in stock")

    stock = record.stock - quantity
    update: Dict[str, Any] = {"stock": stock, "updated_at": now}
    if stock == 0:
        update["status"] = AuctionStatus.SOLD
    return record.model_copy(update=update)


def cancel(record: AuctionRecord, now: datetime) -> AuctionRecord:
    """
    Cancel an active auction that has no bids

    Raises:
        AuctionInProgress: not active, or bids already placed
    """
    if not record.auction_enabled:
        raise AuctionInProgress("Product has no auction to cancel")
    if record.status != AuctionStatus.ACTIVE:
        raise AuctionInProgress(f"Cannot cancel {record.status.value} auction")
    if record.bid_count > 0:
        raise AuctionInProgress("Cannot cancel auction with bids")
    return record.model_copy(update={"status": AuctionStatus.CANCELLED, "updated_at": now})


def ensure_deletable(record: AuctionRecord) -> None:
    if record.auction_enabled and record.status == AuctionStatus.ACTIVE:
        raise AuctionInProgress("Cannot delete a product while its auction is active")
