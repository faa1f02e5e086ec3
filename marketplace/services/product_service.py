"""
Product Service - listing glue around the auction record

Handles:
- Product creation (with optional auction configuration)
- Queries
- Owner updates with bid-field protection
- Direct purchase, cancellation and deletion
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from marketplace.core.config import get_settings
from marketplace.domain import bid_engine
from marketplace.domain.record import AuctionRecord, Category, new_listing, utcnow
from marketplace.infrastructure.repository import ProductRepository
from marketplace.services.record_writer import read_modify_write

logger = logging.getLogger(__name__)


class ProductService:
    """Service for product listings"""

    @staticmethod
    def create_product(db: Session, data: Dict[str, Any]) -> Tuple[AuctionRecord, datetime]:
        """
        Create a product

        Raises:
            InvalidProductData: if any field fails validation
        """
        settings = get_settings()
        now = utcnow()

        increment = data.get("min_bid_increment")
        if increment is None:
            increment = settings.DEFAULT_MIN_BID_INCREMENT

        record = new_listing(
            owner_id=data["owner_id"],
            owner_email=data["owner_email"],
            name=data["name"],
            category=data["category"],
            image=data["image"],
            description=data["description"],
            current_price=data["current_price"],
            original_price=data.get("original_price"),
            color=data.get("color") or "",
            stock=data.get("stock", 1),
            auction_enabled=data.get("auction_enabled", False),
            duration_days=data.get("duration_days"),
            end_time=data.get("end_time"),
            min_bid_increment=increment,
            now=now,
            increment_bounds=(settings.MIN_BID_INCREMENT_FLOOR, settings.MIN_BID_INCREMENT_CEILING),
            duration_bounds=(settings.MIN_AUCTION_DAYS, settings.MAX_AUCTION_DAYS),
        )

        saved = ProductRepository.add(db, record)
        logger.info(
            f"✅ Created product {saved.id}: {saved.name}"
            + (f" (auction until {saved.end_time.isoformat()})" if saved.auction_enabled else ""),
            extra={"product_id": saved.id},
        )
        return saved, now

    @staticmethod
    def get_product(db: Session, product_id: int) -> AuctionRecord:
        return ProductRepository.get(db, product_id)

    @staticmethod
    def list_products(
        db: Session,
        category: Optional[str] = None,
        auction_enabled: Optional[bool] = None,
        owner_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[AuctionRecord]:
        return ProductRepository.list_products(
            db,
            category=Category(category) if category else None,
            auction_enabled=auction_enabled,
            owner_id=owner_id,
            limit=limit,
            offset=offset,
        )

    @staticmethod
    def update_product(db: Session, product_id: int, patch: Dict[str, Any]) -> Tuple[AuctionRecord, datetime]:
        """
        Apply an owner patch

        Bid-controlled fields are always dropped; price, duration,
        end time and increment are also dropped once a bid exists, and
        stock once the product is reserved for its winner.
        """
        settings = get_settings()
        bounds = (settings.MIN_BID_INCREMENT_FLOOR, settings.MIN_BID_INCREMENT_CEILING)

        def mutate(record: AuctionRecord, now: datetime) -> AuctionRecord:
            dropped = sorted(set(patch) - set(bid_engine.sanitize_patch(record, patch)))
            if dropped:
                logger.info(
                    f"🛡️  Ignoring protected fields on product {product_id}: {', '.join(dropped)}",
                    extra={"product_id": product_id},
                )
            return bid_engine.apply_patch(record, patch, now, increment_bounds=bounds)

        return read_modify_write(db, product_id, mutate)

    @staticmethod
    def purchase(db: Session, product_id: int, quantity: int = 1) -> Tuple[AuctionRecord, datetime]:
        """Direct purchase; stock decrements, `sold` at zero"""
        record, now = read_modify_write(
            db,
            product_id,
            lambda record, now: bid_engine.purchase(record, quantity, now),
        )
        logger.info(
            f"🛒 Purchased {quantity} of product {product_id}, {record.stock} left",
            extra={"product_id": product_id},
        )
        return record, now

    @staticmethod
    def cancel_auction(db: Session, product_id: int) -> Tuple[AuctionRecord, datetime]:
        record, now = read_modify_write(db, product_id, bid_engine.cancel)
        logger.info(f"🚫 Cancelled auction on product {product_id}", extra={"product_id": product_id})
        return record, now

    @staticmethod
    def delete_product(db: Session, product_id: int) -> None:
        """
        Delete a product unless its auction is active

        Raises:
            AuctionInProgress
        """
        record = ProductRepository.get(db, product_id)
        bid_engine.ensure_deletable(record)
        ProductRepository.delete(db, record)
        logger.info(f"🗑️  Deleted product {product_id}", extra={"product_id": product_id})
