"""
Winner notification channel

The marketplace does not deliver email itself. Winners are published
as JSON messages on a Redis channel; a mail/SMS service subscribes and
delivers them. Delivery is at-least-once, so subscribers must tolerate
duplicates (use `product_id` as the idempotency key).
"""
import json
import logging
from typing import Dict, Protocol

import redis

from marketplace.domain.record import AuctionRecord

logger = logging.getLogger(__name__)


class NotificationFailed(Exception):
    """The external channel did not accept the message"""
    pass


class WinnerNotifier(Protocol):
    def notify_winner(self, record: AuctionRecord) -> None:
        ...


def build_winner_message(record: AuctionRecord) -> Dict:
    return {
        "type": "AUCTION_WON",
        "product_id": record.id,
        "product_name": record.name,
        "winner": record.best_bidder,
        "winner_email": record.best_bidder_email,
        "winning_bid": record.current_price,
        "seller_email": record.owner_email,
        "reserved_at": record.reserved_at.isoformat() if record.reserved_at else None,
    }


class RedisWinnerNotifier:
    """Publishes winner messages to a Redis pub/sub channel"""
    
    def __init__(self, redis_client: redis.Redis, channel: str):
        self.redis = redis_client
        self.channel = channel
    
    def notify_winner(self, record: AuctionRecord) -> None:
        message = build_winner_message(record)
        try:
            receivers = self.redis.publish(self.channel, json.dumps(message))
        except redis.RedisError as e:
            raise NotificationFailed(str(e)) from e
        
        logger.info(
            f"📧 Published winner notice for product {record.id} to {receivers} subscriber(s)",
            extra={"product_id": record.id, "bidder_email": record.best_bidder_email},
        )
