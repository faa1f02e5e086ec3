"""
Notification Service

Tells winners they won. The external call happens before the
`winner_notified` flag is written, so a crash or a failed flag write
leads to a repeat notice on the next sweep (at-least-once).
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.domain import lifecycle
from marketplace.domain.errors import MarketplaceError, NoWinnerToReserve
from marketplace.infrastructure.notifier import NotificationFailed, WinnerNotifier
from marketplace.infrastructure.repository import ProductRepository
from marketplace.schemas.bid import FailureReport, NotificationReport, NotificationSummary
from marketplace.services.record_writer import read_modify_write

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for winner notifications"""

    @staticmethod
    def notify_winner(db: Session, product_id: int, notifier: WinnerNotifier) -> NotificationReport:
        """
        Notify the winner of one product and flag it

        Already-notified products are reported without a second send.

        Raises:
            NoWinnerToReserve: product is not reserved for a winner
            NotificationFailed: the channel rejected the message
        """
        record = ProductRepository.get(db, product_id)
        if not record.reserved_for_winner:
            raise NoWinnerToReserve(f"Product {product_id} is not reserved for a winner")

        if record.winner_notified:
            return NotificationService._report(record, already_notified=True)

        notifier.notify_winner(record)
        record, _ = read_modify_write(db, product_id, lifecycle.mark_winner_notified)

        logger.info(
            f"📧 Notified {record.best_bidder_email} about {record.name}",
            extra={"product_id": product_id, "bidder_email": record.best_bidder_email},
        )
        return NotificationService._report(record)

    @staticmethod
    def run_notification_sweep(db: Session, notifier: WinnerNotifier) -> NotificationSummary:
        """
        Notify every reserved, unnotified winner

        A failure on one product does not stop the sweep; that product
        keeps `winner_notified=False` and is retried next time.
        """
        summary = NotificationSummary()
        product_ids = ProductRepository.find_unnotified_winners(db)
        logger.info(f"📧 Notification sweep: {len(product_ids)} winner(s) to notify", extra={"sweep": "notification"})

        for product_id in product_ids:
            try:
                report = NotificationService.notify_winner(db, product_id, notifier)
            except (MarketplaceError, NotificationFailed, SQLAlchemyError) as e:
                db.rollback()
                message = e.message if isinstance(e, MarketplaceError) else str(e)
                summary.failures.append(FailureReport(product_id=product_id, error=message))
                logger.error(
                    f"❌ Failed to notify winner of product {product_id}: {message}",
                    extra={"product_id": product_id, "sweep": "notification"},
                )
                continue

            if not report.already_notified:
                summary.notifications.append(report)

        summary.notified = len(summary.notifications)
        summary.failed = len(summary.failures)
        logger.info(
            f"📋 Notification summary: {summary.notified} notified, {summary.failed} failed",
            extra={"sweep": "notification"},
        )
        return summary

    @staticmethod
    def _report(record, already_notified: bool = False) -> NotificationReport:
        return NotificationReport(
            product_id=record.id,
            product_name=record.name,
            winner_email=record.best_bidder_email,
            winning_bid=record.current_price,
            seller_email=record.owner_email,
            already_notified=already_notified,
        )
