"""
Auction domain: the record value, its lifecycle, and bid rules

Everything in this package is pure. Functions take a record and a
`now` snapshot and return a new record or raise a MarketplaceError.
"""
from marketplace.domain.errors import (
    MarketplaceError,
    ProductNotFound,
    InvalidProductData,
    BidRejected,
    NotBiddable,
    AuctionClosed,
    SelfBidForbidden,
    BidTooLow,
    NoWinnerToReserve,
    AuctionInProgress,
    PurchaseNotAllowed,
    ConcurrentModification,
)
from marketplace.domain.record import (
    AuctionRecord,
    AuctionStatus,
    BidEntry,
    Category,
    new_listing,
    utcnow,
)

__all__ = [
    "MarketplaceError",
    "ProductNotFound",
    "InvalidProductData",
    "BidRejected",
    "NotBiddable",
    "AuctionClosed",
    "SelfBidForbidden",
    "BidTooLow",
    "NoWinnerToReserve",
    "AuctionInProgress",
    "PurchaseNotAllowed",
    "ConcurrentModification",
    "AuctionRecord",
    "AuctionStatus",
    "BidEntry",
    "Category",
    "new_listing",
    "utcnow",
]
