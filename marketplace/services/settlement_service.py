"""
Settlement Service

Resolves expired auctions in one batch:
- with a best bidder -> reserved for the winner
- without bids       -> ended, no winner

Safe to run repeatedly and alongside live bidding. Each product is a
separate versioned write; a product that fails (for example because a
bid landed between read and write) is reported in the summary and
picked up again by the next sweep.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.domain import lifecycle
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.record import AuctionRecord, utcnow
from marketplace.infrastructure.repository import ProductRepository
from marketplace.schemas.bid import EndedReport, FailureReport, SettlementSummary, WinnerReport

logger = logging.getLogger(__name__)

RESERVED = "reserved"
ENDED = "ended"
UNCHANGED = "unchanged"


class SettlementService:
    """Service for settling expired auctions"""

    @staticmethod
    def settle_product(db: Session, product_id: int, now: datetime):
        """
        Settle one product at `now`

        Returns:
            (outcome, record) where outcome is "reserved", "ended" or
            "unchanged" if someone else already settled it

        Raises:
            ConcurrentModification, ProductNotFound
        """
        before = ProductRepository.get(db, product_id)
        resolved = lifecycle.resolve(before, now)

        if lifecycle.awaiting_reservation(resolved):
            after = lifecycle.reserve_for_winner(resolved, now)
            outcome = RESERVED
        elif resolved is not before:
            after = resolved
            outcome = ENDED
        else:
            return UNCHANGED, before

        return outcome, ProductRepository.save(db, before, after)

    @staticmethod
    def run_settlement_sweep(db: Session, now: Optional[datetime] = None) -> SettlementSummary:
        """
        Settle every expired, unresolved auction

        Never raises for a single product; failures land in the
        summary.
        """
        now = now or utcnow()
        summary = SettlementSummary(started_at=now)

        candidate_ids = ProductRepository.find_settlement_candidates(db, now)
        logger.info(f"⏰ Settlement sweep: {len(candidate_ids)} expired auction(s) to process", extra={"sweep": "settlement"})

        for product_id in candidate_ids:
            record: Optional[AuctionRecord] = None
            try:
                outcome, record = SettlementService.settle_product(db, product_id, now)
            except (MarketplaceError, SQLAlchemyError) as e:
                db.rollback()
                message = e.message if isinstance(e, MarketplaceError) else str(e)
                summary.failures.append(FailureReport(product_id=product_id, error=message))
                logger.error(
                    f"❌ Failed to settle product {product_id}: {message}",
                    extra={"product_id": product_id, "sweep": "settlement"},
                )
                continue

            if outcome == RESERVED:
                summary.winners.append(WinnerReport(
                    product_id=record.id,
                    product_name=record.name,
                    winner=record.best_bidder,
                    winner_email=record.best_bidder_email,
                    winning_bid=record.current_price,
                    original_price=record.original_price,
                    bid_count=record.bid_count,
                ))
                logger.info(
                    f"  ✅ Reserved {record.name} for {record.best_bidder} at {record.current_price:.2f}",
                    extra={"product_id": record.id, "bidder_email": record.best_bidder_email},
                )
            elif outcome == ENDED:
                summary.ended_without_bids.append(EndedReport(product_id=record.id, product_name=record.name))
                logger.info(f"  ⚠️  No bids on {record.name}, marked ended", extra={"product_id": record.id})

        summary.processed = len(summary.winners) + len(summary.ended_without_bids)
        summary.failed = len(summary.failures)
        summary.finished_at = utcnow()

        logger.info(
            f"📋 Settlement summary: {summary.processed} processed, {summary.failed} failed",
            extra={"sweep": "settlement"},
        )
        return summary
