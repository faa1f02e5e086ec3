"""
Bid Engine Tests

Pure rule checks: no database, explicit `now`.
"""
from datetime import timedelta, timezone

import pytest

from marketplace.domain import bid_engine
from marketplace.domain.errors import (
    AuctionClosed,
    AuctionInProgress,
    BidTooLow,
    InvalidProductData,
    NotBiddable,
    PurchaseNotAllowed,
    SelfBidForbidden,
)
from marketplace.domain.record import AuctionStatus, utcnow
from tests.conftest import OWNER_EMAIL, make_record


@pytest.fixture
def now():
    return utcnow()


@pytest.fixture
def auction(now):
    return make_record(now=now - timedelta(hours=1))


class TestPlaceBid:
    """Acceptance rules for a single bid"""

    def test_bid_below_minimum_reports_minimum(self, auction, now):
        """currentPrice=100, increment=10: 105 is rejected with minimum 110"""
        with pytest.raises(BidTooLow) as exc:
            bid_engine.place_bid(auction, "Ana", "ana@example.com", 105, now)

        assert exc.value.minimum == 110
        assert exc.value.to_dict()["minimum"] == 110

    def test_bid_at_minimum_is_accepted(self, auction, now):
        """Bid of exactly currentPrice + increment wins"""
        updated = bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)

        assert updated.current_price == 110
        assert updated.best_bidder == "Ana"
        assert updated.best_bidder_email == "ana@example.com"
        assert updated.bid_count == 1
        assert updated.top_bid.amount == 110
        assert updated.top_bid.placed_at == now

    def test_original_record_is_untouched(self, auction, now):
        bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)

        assert auction.current_price == 100
        assert auction.bid_count == 0
        assert auction.best_bidder is None

    def test_float_increment_within_epsilon(self, now):
        record = make_record(now=now - timedelta(hours=1), current_price=0.1, min_bid_increment=0.2)

        updated = bid_engine.place_bid(record, "Ana", "ana@example.com", 0.3, now)

        assert updated.current_price == 0.3

    def test_low_bid_rejected_after_many_bids(self, auction, now):
        """The minimum tracks the latest price, not the starting one"""
        record = auction
        for i in range(5):
            record = bid_engine.place_bid(record, f"B{i}", f"b{i}@example.com", record.current_price + 10, now)

        assert record.current_price == 150
        with pytest.raises(BidTooLow) as exc:
            bid_engine.place_bid(record, "Late", "late@example.com", 155, now)
        assert exc.value.minimum == 160

    def test_price_never_decreases(self, auction, now):
        record = auction
        prices = [record.current_price]
        for amount in (110, 125, 105, 140, 139, 150):
            try:
                record = bid_engine.place_bid(record, "X", "x@example.com", amount, now)
            except BidTooLow:
                pass
            prices.append(record.current_price)

        assert prices == sorted(prices)
        assert [entry.amount for entry in record.bid_history] == [110, 125, 140, 150]

    def test_top_of_history_matches_best_bidder(self, auction, now):
        record = bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)
        record = bid_engine.place_bid(record, "Ivo", "ivo@example.com", 130, now)

        assert record.top_bid.bidder_name == record.best_bidder == "Ivo"
        assert record.top_bid.bidder_email == record.best_bidder_email == "ivo@example.com"

    def test_owner_cannot_bid_even_when_highest(self, auction, now):
        with pytest.raises(SelfBidForbidden):
            bid_engine.place_bid(auction, "Owner", OWNER_EMAIL.upper(), 10_000, now)

    def test_non_positive_amount_rejected(self, auction, now):
        with pytest.raises(BidTooLow):
            bid_engine.place_bid(auction, "Ana", "ana@example.com", 0, now)

    def test_plain_listing_is_not_biddable(self, now):
        record = make_record(now=now, auction_enabled=False)

        with pytest.raises(NotBiddable):
            bid_engine.place_bid(record, "Ana", "ana@example.com", 500, now)

    def test_out_of_stock_is_not_biddable(self, auction, now):
        record = auction.model_copy(update={"stock": 0})

        with pytest.raises(NotBiddable):
            bid_engine.place_bid(record, "Ana", "ana@example.com", 500, now)

    def test_expired_active_auction_is_not_biddable(self, auction):
        after_end = auction.end_time + timedelta(seconds=1)

        with pytest.raises(NotBiddable):
            bid_engine.place_bid(auction, "Ana", "ana@example.com", 500, after_end)

    def test_bid_at_exact_end_time_is_not_biddable(self, auction):
        with pytest.raises(NotBiddable):
            bid_engine.place_bid(auction, "Ana", "ana@example.com", 500, auction.end_time)

    @pytest.mark.parametrize("status", [AuctionStatus.ENDED, AuctionStatus.RESERVED, AuctionStatus.CANCELLED])
    def test_closed_auction_rejects_bid(self, auction, now, status):
        record = auction.model_copy(update={"status": status})

        with pytest.raises(AuctionClosed):
            bid_engine.place_bid(record, "Ana", "ana@example.com", 500, now)

    def test_closed_check_runs_before_owner_check(self, auction, now):
        record = auction.model_copy(update={"status": AuctionStatus.ENDED})

        with pytest.raises(AuctionClosed):
            bid_engine.place_bid(record, "Owner", OWNER_EMAIL, 500, now)


class TestPatchProtection:
    """Owner updates cannot reach bid-controlled state"""

    def test_bid_fields_always_stripped(self, auction, now):
        patch = {"best_bidder": "Mallory", "status": "sold", "winner_notified": True, "name": "Renamed"}

        updated = bid_engine.apply_patch(auction, patch, now)

        assert updated.name == "Renamed"
        assert updated.best_bidder is None
        assert updated.status == AuctionStatus.ACTIVE
        assert updated.winner_notified is False

    def test_price_editable_before_first_bid(self, auction, now):
        updated = bid_engine.apply_patch(auction, {"current_price": 80.0, "min_bid_increment": 5.0}, now)

        assert updated.current_price == 80.0
        assert updated.min_bid_increment == 5.0

    def test_price_and_timing_frozen_after_first_bid(self, auction, now):
        record = bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)
        patch = {
            "current_price": 1.0,
            "min_bid_increment": 500.0,
            "duration_days": 30,
            "end_time": now + timedelta(days=20),
            "description": "Updated description after the first bid.",
        }

        assert set(bid_engine.sanitize_patch(record, patch)) == {"description"}

        updated = bid_engine.apply_patch(record, patch, now)
        assert updated.current_price == 110
        assert updated.min_bid_increment == 10.0
        assert updated.end_time == record.end_time
        assert updated.description == "Updated description after the first bid."

    def test_new_duration_restarts_clock(self, auction, now):
        updated = bid_engine.apply_patch(auction, {"duration_days": 3}, now)

        assert updated.end_time == now + timedelta(days=3)

    def test_past_end_time_rejected(self, auction, now):
        with pytest.raises(InvalidProductData):
            bid_engine.apply_patch(auction, {"end_time": now - timedelta(minutes=1)}, now)

    def test_stock_to_zero_marks_sold(self, auction, now):
        updated = bid_engine.apply_patch(auction, {"stock": 0}, now)

        assert updated.status == AuctionStatus.SOLD

    def test_empty_patch_returns_same_record(self, auction, now):
        assert bid_engine.apply_patch(auction, {"bid_history": []}, now) is auction

    def test_reserved_stock_is_frozen(self, auction, now):
        record = bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)
        record = record.model_copy(update={"status": AuctionStatus.RESERVED, "reserved_for_winner": True})

        updated = bid_engine.apply_patch(record, {"stock": 0, "color": "black"}, now)

        assert updated.stock == record.stock
        assert updated.status == AuctionStatus.RESERVED
        assert updated.reserved_for_winner is True
        assert updated.color == "black"

    def test_patched_values_are_validated(self, auction, now):
        with pytest.raises(InvalidProductData) as exc:
            bid_engine.apply_patch(auction, {"name": None, "auction_enabled": "maybe"}, now)

        fields = {error.split(":")[0] for error in exc.value.errors}
        assert fields == {"name", "auction_enabled"}

    def test_aware_end_time_stored_as_utc(self, auction, now):
        end = (now + timedelta(days=2)).replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=2)))

        updated = bid_engine.apply_patch(auction, {"end_time": end}, now)

        assert updated.end_time == now + timedelta(days=2)
        assert updated.end_time.tzinfo is None


class TestPurchaseCancelDelete:
    def test_purchase_decrements_stock(self, now):
        record = make_record(now=now, auction_enabled=False, stock=3)

        updated = bid_engine.purchase(record, 2, now)

        assert updated.stock == 1
        assert updated.status == AuctionStatus.ACTIVE

    def test_last_item_marks_sold_even_during_auction(self, auction, now):
        record = bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)

        updated = bid_engine.purchase(record, 1, now)

        assert updated.stock == 0
        assert updated.status == AuctionStatus.SOLD
        with pytest.raises(NotBiddable):
            bid_engine.place_bid(updated, "Ivo", "ivo@example.com", 500, now)

    def test_bidding_does_not_touch_stock(self, auction, now):
        updated = bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)

        assert updated.stock == auction.stock

    def test_reserved_product_cannot_be_purchased(self, auction, now):
        record = auction.model_copy(update={"status": AuctionStatus.RESERVED, "reserved_for_winner": True})

        with pytest.raises(PurchaseNotAllowed):
            bid_engine.purchase(record, 1, now)

    def test_purchase_more_than_stock(self, auction, now):
        with pytest.raises(PurchaseNotAllowed):
            bid_engine.purchase(auction, 5, now)

    def test_cancel_without_bids(self, auction, now):
        assert bid_engine.cancel(auction, now).status == AuctionStatus.CANCELLED

    def test_cancel_with_bids_refused(self, auction, now):
        record = bid_engine.place_bid(auction, "Ana", "ana@example.com", 110, now)

        with pytest.raises(AuctionInProgress):
            bid_engine.cancel(record, now)

    def test_delete_refused_while_active(self, auction):
        with pytest.raises(AuctionInProgress):
            bid_engine.ensure_deletable(auction)

    def test_delete_allowed_once_ended(self, auction):
        bid_engine.ensure_deletable(auction.model_copy(update={"status": AuctionStatus.ENDED}))
