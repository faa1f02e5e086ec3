"""
Product Repository

Maps `products` / `bid_entries` rows to immutable AuctionRecord values
and writes them back with optimistic concurrency. Every write is a
read-modify-write against the version that was read: if another
transaction committed in between, the UPDATE matches zero rows and the
write fails with ConcurrentModification.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from marketplace.domain.errors import ConcurrentModification, ProductNotFound
from marketplace.domain.record import AuctionRecord, AuctionStatus, BidEntry, utcnow
from marketplace.models import BidEntryRow, Product

logger = logging.getLogger(__name__)

# Columns copied from a record onto its row on every save
WRITABLE_COLUMNS = (
    "owner_id",
    "owner_email",
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
    "status",
    "best_bidder",
    "best_bidder_email",
    "winner_notified",
    "reserved_for_winner",
    "reserved_at",
    "updated_at",
)


def to_record(row: Product) -> AuctionRecord:
    """Convert a Product row (with its bids) to a record value"""
    return AuctionRecord(
        id=row.id,
        version=row.version,
        owner_id=row.owner_id,
        owner_email=row.owner_email,
        name=row.name,
        category=row.category,
        image=row.image,
        description=row.description,
        color=row.color or "",
        stock=row.stock,
        original_price=row.original_price,
        current_price=row.current_price,
        auction_enabled=row.auction_enabled,
        duration_days=row.duration_days,
        end_time=row.end_time,
        min_bid_increment=row.min_bid_increment,
        status=row.status,
        best_bidder=row.best_bidder,
        best_bidder_email=row.best_bidder_email,
        bid_history=tuple(
            BidEntry(
                bidder_name=bid.bidder_name,
                bidder_email=bid.bidder_email,
                amount=bid.amount,
                placed_at=bid.placed_at,
            )
            for bid in row.bids
        ),
        winner_notified=row.winner_notified,
        reserved_for_winner=row.reserved_for_winner,
        reserved_at=row.reserved_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ProductRepository:
    """Persistence for auction records"""

    @staticmethod
    def get(db: Session, product_id: int) -> AuctionRecord:
        """
        Read the current persisted version of a record

        Raises:
            ProductNotFound
        """
        row = db.get(
            Product,
            product_id,
            options=[selectinload(Product.bids)],
            populate_existing=True,
        )
        if row is None:
            raise ProductNotFound(product_id)
        return to_record(row)

    @staticmethod
    def add(db: Session, record: AuctionRecord) -> AuctionRecord:
        """Insert a new record; the version starts at 1"""
        row = Product(**{column: getattr(record, column) for column in WRITABLE_COLUMNS})
        row.created_at = record.created_at or utcnow()
        row.updated_at = record.updated_at or row.created_at
        row.bids = [
            BidEntryRow(
                sequence=sequence,
                bidder_name=entry.bidder_name,
                bidder_email=entry.bidder_email,
                amount=entry.amount,
                placed_at=entry.placed_at,
            )
            for sequence, entry in enumerate(record.bid_history)
        ]
        db.add(row)
        db.commit()
        db.refresh(row)
        return to_record(row)

    @staticmethod
    def save(db: Session, before: AuctionRecord, after: AuctionRecord) -> AuctionRecord:
        """
        Write `after` if the row is still at `before.version`

        New bid history entries (those past the length of
        `before.bid_history`) are appended; existing entries are never
        rewritten.

        Raises:
            ProductNotFound: row deleted since it was read
            ConcurrentModification: row changed since it was read
        """
        row = db.get(Product, before.id)
        if row is None:
            raise ProductNotFound(before.id)
        if row.version != before.version:
            raise ConcurrentModification(before.id)

        for column in WRITABLE_COLUMNS:
            setattr(row, column, getattr(after, column))

        start = len(before.bid_history)
        for sequence, entry in enumerate(after.bid_history[start:], start=start):
            row.bids.append(BidEntryRow(
                sequence=sequence,
                bidder_name=entry.bidder_name,
                bidder_email=entry.bidder_email,
                amount=entry.amount,
                placed_at=entry.placed_at,
            ))

        try:
            db.commit()
        except (StaleDataError, IntegrityError) as e:
            db.rollback()
            logger.warning(
                f"⚠️  Concurrent write rejected for product {before.id} (read version {before.version}): {e}",
                extra={"product_id": before.id},
            )
            raise ConcurrentModification(before.id) from e

        db.refresh(row)
        return to_record(row)

    @staticmethod
    def delete(db: Session, before: AuctionRecord) -> None:
        row = db.get(Product, before.id)
        if row is None:
            raise ProductNotFound(before.id)
        if row.version != before.version:
            raise ConcurrentModification(before.id)

        db.delete(row)
        try:
            db.commit()
        except StaleDataError as e:
            db.rollback()
            raise ConcurrentModification(before.id) from e

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @staticmethod
    def list_products(
        db: Session,
        category: Optional[str] = None,
        auction_enabled: Optional[bool] = None,
        owner_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuctionRecord]:
        """Products newest first, optionally filtered"""
        query = db.query(Product).options(selectinload(Product.bids))

        if category:
            query = query.filter(Product.category == category)
        if auction_enabled is not None:
            query = query.filter(Product.auction_enabled == auction_enabled)
        if owner_id:
            query = query.filter(Product.owner_id == owner_id)

        rows = query.order_by(Product.created_at.desc(), Product.id.desc()).offset(offset).limit(limit).all()
        return [to_record(row) for row in rows]

    @staticmethod
    def find_settlement_candidates(db: Session, now: datetime) -> List[int]:
        """
        Ids needing settlement

        Active auctions whose end time has passed, plus ended auctions
        that have a winner but were never reserved.
        """
        rows = db.query(Product.id).filter(
            Product.auction_enabled == True,  # noqa: E712
            or_(
                and_(Product.status == AuctionStatus.ACTIVE, Product.end_time <= now),
                and_(
                    Product.status == AuctionStatus.ENDED,
                    Product.best_bidder.isnot(None),
                    Product.reserved_for_winner == False,  # noqa: E712
                ),
            ),
        ).order_by(Product.end_time.asc(), Product.id.asc()).all()
        return [row[0] for row in rows]

    @staticmethod
    def find_unnotified_winners(db: Session) -> List[int]:
        """Ids reserved for a winner who has not been notified"""
        rows = db.query(Product.id).filter(
            Product.reserved_for_winner == True,  # noqa: E712
            Product.status.in_([AuctionStatus.RESERVED, AuctionStatus.ENDED]),
            Product.winner_notified == False,  # noqa: E712
        ).order_by(Product.reserved_at.asc(), Product.id.asc()).all()
        return [row[0] for row in rows]

    @staticmethod
    def list_active_auctions(db: Session, now: datetime, limit: int = 50) -> List[AuctionRecord]:
        """Biddable auctions, soonest ending first"""
        rows = db.query(Product).options(selectinload(Product.bids)).filter(
            Product.auction_enabled == True,  # noqa: E712
            Product.status == AuctionStatus.ACTIVE,
            Product.stock > 0,
            Product.end_time > now,
        ).order_by(Product.end_time.asc()).limit(limit).all()
        return [to_record(row) for row in rows]

    @staticmethod
    def list_reserved_for(db: Session, email: str) -> List[AuctionRecord]:
        rows = db.query(Product).options(selectinload(Product.bids)).filter(
            Product.reserved_for_winner == True,  # noqa: E712
            Product.best_bidder_email == email,
        ).order_by(Product.reserved_at.desc()).all()
        return [to_record(row) for row in rows]

    @staticmethod
    def all_records(db: Session) -> List[AuctionRecord]:
        """Every product, plain listings included"""
        rows = db.query(Product).options(selectinload(Product.bids)).all()
        return [to_record(row) for row in rows]
