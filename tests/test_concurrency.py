"""
Optimistic concurrency tests

Two sessions stand in for two concurrent requests against the same
product.
"""
import pytest

from marketplace.core.config import get_settings
from marketplace.domain import bid_engine
from marketplace.domain.errors import BidTooLow, ConcurrentModification
from marketplace.infrastructure.repository import ProductRepository
from marketplace.services import BidService
from marketplace.services.record_writer import read_modify_write


@pytest.fixture
def sessions(session_factory):
    first, second = session_factory(), session_factory()
    yield first, second
    first.close()
    second.close()


class TestVersionedWrites:
    def test_stale_write_is_rejected(self, sessions, add_auction):
        first, second = sessions
        product = add_auction()

        stale = ProductRepository.get(first, product.id)
        fresh = ProductRepository.get(second, product.id)
        ProductRepository.save(second, fresh, bid_engine.place_bid(fresh, "Ivo", "ivo@example.com", 150.0, fresh.updated_at))

        with pytest.raises(ConcurrentModification) as exc:
            ProductRepository.save(first, stale, bid_engine.place_bid(stale, "Ana", "ana@example.com", 200.0, stale.updated_at))

        assert exc.value.retryable is True
        record = ProductRepository.get(first, product.id)
        assert record.current_price == 150.0
        assert record.best_bidder == "Ivo"
        assert record.bid_count == 1

    def test_loser_is_reevaluated_against_new_price(self, sessions, add_auction):
        """Simultaneous top bids: the second writer re-reads and fails BidTooLow"""
        first, second = sessions
        product = add_auction()
        seen_prices = []

        def mutate(record, now):
            seen_prices.append(record.current_price)
            if len(seen_prices) == 1:
                BidService.place_bid(second, product.id, "Ivo", "ivo@example.com", 150.0)
            return bid_engine.place_bid(record, "Ana", "ana@example.com", 120.0, now)

        with pytest.raises(BidTooLow) as exc:
            read_modify_write(first, product.id, mutate)

        assert seen_prices == [100.0, 150.0]
        assert exc.value.minimum == 160.0
        assert ProductRepository.get(first, product.id).best_bidder == "Ivo"

    def test_loser_with_higher_bid_wins_on_retry(self, sessions, add_auction):
        first, second = sessions
        product = add_auction()
        calls = []

        def mutate(record, now):
            calls.append(record.version)
            if len(calls) == 1:
                BidService.place_bid(second, product.id, "Ivo", "ivo@example.com", 150.0)
            return bid_engine.place_bid(record, "Ana", "ana@example.com", 300.0, now)

        record, _ = read_modify_write(first, product.id, mutate)

        assert len(calls) == 2
        assert record.current_price == 300.0
        assert [entry.bidder_name for entry in record.bid_history] == ["Ivo", "Ana"]

    def test_single_attempt_policy_surfaces_conflict(self, sessions, add_auction, monkeypatch):
        first, second = sessions
        product = add_auction()
        monkeypatch.setattr(get_settings(), "WRITE_MAX_ATTEMPTS", 1)

        def mutate(record, now):
            BidService.place_bid(second, product.id, "Ivo", "ivo@example.com", 150.0)
            return bid_engine.place_bid(record, "Ana", "ana@example.com", 300.0, now)

        with pytest.raises(ConcurrentModification):
            read_modify_write(first, product.id, mutate)

        assert ProductRepository.get(first, product.id).current_price == 150.0

    def test_bid_history_is_append_only(self, db, add_auction):
        product = add_auction(bids=[("Ana", "ana@example.com", 110.0)])

        BidService.place_bid(db, product.id, "Ivo", "ivo@example.com", 120.0)
        BidService.place_bid(db, product.id, "Ana", "ana@example.com", 130.0)

        record = ProductRepository.get(db, product.id)
        assert [(e.bidder_name, e.amount) for e in record.bid_history] == [
            ("Ana", 110.0),
            ("Ivo", 120.0),
            ("Ana", 130.0),
        ]
        assert record.version == product.version + 2
