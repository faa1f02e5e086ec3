"""
Stats Service - read-side aggregation for dashboards
"""
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from marketplace.domain import lifecycle
from marketplace.domain.record import AuctionRecord, AuctionStatus, utcnow
from marketplace.infrastructure.repository import ProductRepository
from marketplace.schemas.bid import BiddingStats, StatusGroup


class StatsService:
    """Service for bidding statistics"""

    @staticmethod
    def get_bidding_stats(db: Session, now: Optional[datetime] = None) -> BiddingStats:
        """
        Group products by status

        Status groups cover every product, plain listings included, and
        are computed over resolved records, so an active auction past its
        end time counts as ended. `active_biddings` and `expired_biddings`
        count auctions only; `expired_biddings` counts those still
        unresolved in storage, and when it is non-zero the settlement
        sweep has work to do.
        """
        now = now or utcnow()
        records = ProductRepository.all_records(db)

        active = 0
        expired = 0
        for record in records:
            if record.auction_enabled and record.status == AuctionStatus.ACTIVE:
                if lifecycle.is_expired(record, now):
                    expired += 1
                else:
                    active += 1

        resolved = [lifecycle.resolve(record, now) for record in records]
        groups = StatsService._group_by_status(resolved)

        return BiddingStats(
            stats=groups,
            active_biddings=active,
            expired_biddings=expired,
            reserved_products=sum(1 for record in resolved if record.reserved_for_winner),
            needs_processing=expired > 0,
        )

    @staticmethod
    def _group_by_status(records: List[AuctionRecord]) -> List[StatusGroup]:
        buckets: Dict[AuctionStatus, List[AuctionRecord]] = defaultdict(list)
        for record in records:
            buckets[record.status].append(record)

        return [
            StatusGroup(
                status=status,
                count=len(members),
                avg_current_price=round(sum(r.current_price for r in members) / len(members), 2),
                total_bids=sum(r.bid_count for r in members),
            )
            for status, members in sorted(buckets.items(), key=lambda item: item[0].value)
        ]
