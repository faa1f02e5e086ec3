"""
Versioned read-modify-write of a single product
"""
import logging
from datetime import datetime
from typing import Callable, Tuple

from sqlalchemy.orm import Session

from marketplace.core.config import get_settings
from marketplace.domain.errors import ConcurrentModification
from marketplace.domain.record import AuctionRecord, utcnow
from marketplace.infrastructure.repository import ProductRepository

logger = logging.getLogger(__name__)

Mutation = Callable[[AuctionRecord, datetime], AuctionRecord]


def read_modify_write(db: Session, product_id: int, mutate: Mutation) -> Tuple[AuctionRecord, datetime]:
    """
    Read the record, apply `mutate`, write it back at the read version

    Each attempt takes one `now` snapshot and a fresh read, so a retry
    re-evaluates the rules against whatever the winning writer left.
    Business errors raised by `mutate` abandon the write immediately.
    At most WRITE_MAX_ATTEMPTS attempts are made.

    Returns:
        (saved record, the `now` used by the successful attempt)

    Raises:
        ConcurrentModification: every attempt lost the race
    """
    attempts = max(1, get_settings().WRITE_MAX_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        now = utcnow()
        before = ProductRepository.get(db, product_id)
        after = mutate(before, now)

        if after is before:
            return before, now

        try:
            return ProductRepository.save(db, before, after), now
        except ConcurrentModification:
            if attempt == attempts:
                logger.warning(
                    f"❌ Giving up on product {product_id} after {attempts} attempt(s)",
                    extra={"product_id": product_id},
                )
                raise
            logger.info(
                f"🔁 Retrying write on product {product_id} (attempt {attempt + 1}/{attempts})",
                extra={"product_id": product_id},
            )

    raise ConcurrentModification(product_id)
