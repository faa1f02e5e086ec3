"""
Lifecycle Resolver

Status transitions of an auction as a function of the record and a
single `now` snapshot taken by the caller:

    active --(end time reached, no bids)--> ended
    active --(end time reached, winner)---> ended --reserve--> reserved
    any    --(stock reaches 0)------------> sold

Nothing here touches storage; callers persist what they choose.
"""
from datetime import datetime
from typing import Optional

from marketplace.domain.errors import NoWinnerToReserve
from marketplace.domain.record import AuctionRecord, AuctionStatus

CLOSED_STATUSES = frozenset({AuctionStatus.ENDED, AuctionStatus.SOLD, AuctionStatus.RESERVED})


def is_expired(record: AuctionRecord, now: datetime) -> bool:
    return bool(record.auction_enabled and record.end_time is not None and now >= record.end_time)


def is_bidding_ended(record: AuctionRecord, now: datetime) -> bool:
    return record.status in CLOSED_STATUSES or is_expired(record, now)


def can_bid(record: AuctionRecord, now: datetime) -> bool:
    return (
        record.auction_enabled
        and record.stock > 0
        and record.status == AuctionStatus.ACTIVE
        and not is_expired(record, now)
    )


def needs_settlement(record: AuctionRecord, now: datetime) -> bool:
    """Active auction past its end time"""
    return record.status == AuctionStatus.ACTIVE and is_expired(record, now)


def awaiting_reservation(record: AuctionRecord) -> bool:
    """Ended with a winner but not reserved yet"""
    return (
        record.status == AuctionStatus.ENDED
        and record.has_winner
        and not record.reserved_for_winner
    )


def resolve(record: AuctionRecord, now: datetime) -> AuctionRecord:
    """
    Close an expired active auction

    Idempotent: records that are not active-and-expired come back
    unchanged. A resolved record with a best bidder is left `ended` and
    `awaiting_reservation()`; `reserve_for_winner()` finishes it.
    """
    if not needs_settlement(record, now):
        return record
    return record.model_copy(update={"status": AuctionStatus.ENDED, "updated_at": now})


def reserve_for_winner(record: AuctionRecord, now: datetime) -> AuctionRecord:
    """
    Reserve the product for the best bidder

    Reservation is represented as status `reserved` with
    `reserved_for_winner=True`. Reserving an already reserved record is
    a no-op.

    Raises:
        NoWinnerToReserve: no best bidder, or bidding has not ended
    """
    if not record.has_winner:
        raise NoWinnerToReserve(f"Product {record.id} has no winning bidder to reserve for")
    if not is_bidding_ended(record, now):
        raise NoWinnerToReserve(f"Bidding on product {record.id} has not ended yet")
    if record.reserved_for_winner:
        return record
    if record.status not in (AuctionStatus.ACTIVE, AuctionStatus.ENDED):
        raise NoWinnerToReserve(f"Product {record.id} is {record.status.value} and cannot be reserved")

    return record.model_copy(update={
        "status": AuctionStatus.RESERVED,
        "reserved_for_winner": True,
        "reserved_at": now,
        "updated_at": now,
    })


def mark_winner_notified(record: AuctionRecord, now: datetime) -> AuctionRecord:
    if not record.reserved_for_winner:
        raise NoWinnerToReserve(f"Product {record.id} is not reserved for a winner")
    if record.winner_notified:
        return record
    return record.model_copy(update={"winner_notified": True, "updated_at": now})


def time_remaining_seconds(record: AuctionRecord, now: datetime) -> Optional[int]:
    """Seconds until the end time, 0 once passed, None without an auction"""
    if not record.auction_enabled or record.end_time is None:
        return None
    return max(0, int((record.end_time - now).total_seconds()))
