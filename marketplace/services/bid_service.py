"""
Bid Service - Business Logic

Handles:
- Bid placement (versioned read-modify-write)
- Bid history
- Active auctions and per-user reservations
- Manual reservation for a winner
"""
import logging
from datetime import datetime
from typing import List, Tuple

from sqlalchemy.orm import Session

from marketplace.domain import bid_engine, lifecycle
from marketplace.domain.errors import BidRejected
from marketplace.domain.record import AuctionRecord, utcnow
from marketplace.infrastructure.repository import ProductRepository
from marketplace.services.record_writer import read_modify_write

logger = logging.getLogger(__name__)


class BidService:
    """
    Service for bid-related business logic

    Two bids racing for the same product cannot both win: the write
    carries the version that was read, so the loser re-reads and is
    re-evaluated against the new price.
    """

    @staticmethod
    def place_bid(
        db: Session,
        product_id: int,
        bidder_name: str,
        bidder_email: str,
        amount: float,
    ) -> Tuple[AuctionRecord, datetime]:
        """
        Place a bid

        Raises:
            ProductNotFound
            NotBiddable, AuctionClosed, SelfBidForbidden, BidTooLow
            ConcurrentModification: lost the race on every attempt
        """
        def mutate(record: AuctionRecord, now: datetime) -> AuctionRecord:
            return bid_engine.place_bid(record, bidder_name, bidder_email, amount, now)

        try:
            record, now = read_modify_write(db, product_id, mutate)
        except BidRejected as e:
            logger.info(
                f"❌ Bid rejected on product {product_id}: {e.message}",
                extra={"product_id": product_id, "bidder_email": bidder_email},
            )
            raise

        logger.info(
            f"💰 Bid accepted on product {product_id}: {bidder_name} -> {amount:.2f} "
            f"(bid #{record.bid_count})",
            extra={"product_id": product_id, "bidder_email": bidder_email},
        )
        return record, now

    @staticmethod
    def get_bid_history(db: Session, product_id: int) -> Tuple[AuctionRecord, datetime]:
        """Record plus the `now` its derived fields are computed against"""
        return ProductRepository.get(db, product_id), utcnow()

    @staticmethod
    def list_active_auctions(db: Session, limit: int = 50) -> Tuple[List[AuctionRecord], datetime]:
        now = utcnow()
        return ProductRepository.list_active_auctions(db, now, limit=limit), now

    @staticmethod
    def list_reserved_for(db: Session, email: str) -> Tuple[List[AuctionRecord], datetime]:
        """Products reserved for the given winner email"""
        return ProductRepository.list_reserved_for(db, email), utcnow()

    @staticmethod
    def reserve(db: Session, product_id: int) -> Tuple[AuctionRecord, datetime]:
        """
        Reserve a single product for its winner outside the batch job

        Raises:
            NoWinnerToReserve: no best bidder, or bidding not ended
        """
        def mutate(record: AuctionRecord, now: datetime) -> AuctionRecord:
            return lifecycle.reserve_for_winner(lifecycle.resolve(record, now), now)

        record, now = read_modify_write(db, product_id, mutate)
        logger.info(
            f"🔒 Reserved product {product_id} for {record.best_bidder}",
            extra={"product_id": product_id, "bidder_email": record.best_bidder_email},
        )
        return record, now
