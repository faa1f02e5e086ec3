"""
Auction Record

One value type serves both a plain listing and, when `auction_enabled`
is set, a timed auction. Records are frozen: every change produces a
new record via `model_copy(update=...)`.
"""
import enum
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from marketplace.domain.errors import InvalidProductData

URL_PATTERN = re.compile(r"^https?://.+")
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware timestamp to naive UTC; naive values are taken as UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class AuctionStatus(str, enum.Enum):
    """Auction status enum"""
    ACTIVE = "active"
    ENDED = "ended"
    RESERVED = "reserved"
    SOLD = "sold"
    CANCELLED = "cancelled"


class Category(str, enum.Enum):
    """Closed list of product categories"""
    ELEKTRONIKA = "Elektronika"
    NAMJESTAJ = "Namještaj"
    ODJECA = "Odjeća"
    KNJIGE = "Knjige"
    SPORT = "Sport"
    IGRACKE = "Igračke"
    ANTIKVITETI = "Antikviteti"
    SATOVI = "Satovi"
    RACUNALA = "Računala"
    GLAZBALA = "Glazbala"
    OSTALO = "Ostalo"


class BidEntry(BaseModel):
    """One accepted bid"""
    model_config = ConfigDict(frozen=True)

    bidder_name: str
    bidder_email: str
    amount: float
    placed_at: datetime


class AuctionRecord(BaseModel):
    """Persisted product listing with optional auction state"""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    version: int = 0

    # Identity
    owner_id: str
    owner_email: str

    # Listing
    name: str
    category: Category
    image: str
    description: str
    color: str = ""
    stock: int = 1
    original_price: float
    current_price: float

    # Auction configuration
    auction_enabled: bool = False
    duration_days: Optional[int] = None
    end_time: Optional[datetime] = None
    min_bid_increment: float = 1.0

    # Auction live state
    status: AuctionStatus = AuctionStatus.ACTIVE
    best_bidder: Optional[str] = None
    best_bidder_email: Optional[str] = None
    bid_history: Tuple[BidEntry, ...] = ()
    winner_notified: bool = False
    reserved_for_winner: bool = False
    reserved_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def bid_count(self) -> int:
        return len(self.bid_history)

    @property
    def top_bid(self) -> Optional[BidEntry]:
        return self.bid_history[-1] if self.bid_history else None

    @property
    def has_winner(self) -> bool:
        return self.best_bidder is not None


def new_listing(
    *,
    owner_id: str,
    owner_email: str,
    name: str,
    category: str,
    image: str,
    description: str,
    current_price: float,
    now: datetime,
    original_price: Optional[float] = None,
    color: str = "",
    stock: int = 1,
    auction_enabled: bool = False,
    duration_days: Optional[int] = None,
    end_time: Optional[datetime] = None,
    min_bid_increment: float = 1.0,
    increment_bounds: Tuple[float, float] = (0.01, 1000.0),
    duration_bounds: Tuple[int, int] = (1, 30),
) -> AuctionRecord:
    """
    Build a new listing, validating creation invariants

    When auctioning is enabled the end timestamp is taken from
    `end_time` or computed from `duration_days`, and must lie strictly
    after `now`.

    Raises:
        InvalidProductData: with one message per failed field
    """
    errors: List[str] = []

    if not name or not name.strip():
        errors.append("name: product name is required")
    elif len(name.strip()) > 100:
        errors.append("name: at most 100 characters")

    try:
        category_value = Category(category)
    except ValueError:
        category_value = None
        errors.append(f"category: must be one of {', '.join(c.value for c in Category)}")

    if not image or not URL_PATTERN.match(image.strip()):
        errors.append("image: must be a valid http(s) URL")

    description = (description or "").strip()
    if len(description) < 10:
        errors.append("description: at least 10 characters")
    elif len(description) > 1000:
        errors.append("description: at most 1000 characters")

    if current_price is None or current_price < 0.01:
        errors.append("current_price: must be at least 0.01")
    if original_price is not None and original_price < 0.01:
        errors.append("original_price: must be at least 0.01")

    if stock < 1:
        errors.append("stock: must be a positive integer")
    if color and len(color.strip()) > 50:
        errors.append("color: at most 50 characters")

    if not owner_id:
        errors.append("owner_id: owner id is required")
    if not owner_email or not EMAIL_PATTERN.match(owner_email):
        errors.append("owner_email: must be a valid email")

    if auction_enabled:
        low, high = duration_bounds
        if end_time is None and duration_days is None:
            errors.append("duration_days: either duration_days or end_time is required")
        if duration_days is not None and not low <= duration_days <= high:
            errors.append(f"duration_days: must be between {low} and {high}")

        if end_time is None and duration_days is not None:
            end_time = now + timedelta(days=duration_days)
        if end_time is not None and end_time <= now:
            errors.append("end_time: must be in the future")

        inc_low, inc_high = increment_bounds
        if min_bid_increment is None or min_bid_increment <= 0:
            errors.append("min_bid_increment: must be greater than 0")
        elif not inc_low <= min_bid_increment <= inc_high:
            errors.append(f"min_bid_increment: must be between {inc_low} and {inc_high}")

    if errors:
        raise InvalidProductData(errors)

    return AuctionRecord(
        owner_id=owner_id,
        owner_email=owner_email,
        name=name.strip(),
        category=category_value,
        image=image.strip(),
        description=description,
        color=(color or "").strip(),
        stock=stock,
        original_price=original_price if original_price is not None else current_price,
        current_price=current_price,
        auction_enabled=auction_enabled,
        duration_days=duration_days if auction_enabled else None,
        end_time=end_time if auction_enabled else None,
        min_bid_increment=min_bid_increment if auction_enabled else 1.0,
        status=AuctionStatus.ACTIVE,
        created_at=now,
        updated_at=now,
    )
