"""
Bid history rows
"""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from marketplace.models import Base


class BidEntryRow(Base):
    """One accepted bid, append-only"""
    
    __tablename__ = "bid_entries"
    __table_args__ = (UniqueConstraint("product_id", "sequence", name="uq_bid_entries_product_sequence"),)
    
    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    bidder_name = Column(String(255), nullable=False)
    bidder_email = Column(String(255), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    placed_at = Column(DateTime, nullable=False, index=True)
    
    product = relationship("Product", back_populates="bids")
