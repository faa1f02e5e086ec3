"""
Database Models
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import models after Base is defined
from marketplace.models.product import Product  # noqa: E402
from marketplace.models.bid_entry import BidEntryRow  # noqa: E402

__all__ = ["Base", "Product", "BidEntryRow"]
