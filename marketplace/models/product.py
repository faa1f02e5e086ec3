"""
Product Model
"""
from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Float, Integer, String, Text
from sqlalchemy.orm import relationship

from marketplace.domain.record import AuctionStatus, Category, utcnow
from marketplace.models import Base


class Product(Base):
    """Product listing with optional auction state"""
    
    __tablename__ = "products"
    
    id = Column(Integer, primary_key=True, index=True)
    version = Column(Integer, nullable=False)
    
    owner_id = Column(String(64), nullable=False, index=True)
    owner_email = Column(String(255), nullable=False)
    
    name = Column(String(100), nullable=False)
    category = Column(
        SQLEnum(Category, values_callable=lambda enum: [c.value for c in enum], name="product_category"),
        nullable=False,
        index=True,
    )
    image = Column(String(1000), nullable=False)
    description = Column(Text, nullable=False)
    color = Column(String(50), default="")
    stock = Column(Integer, nullable=False, default=1)
    original_price = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False)
    
    auction_enabled = Column(Boolean, nullable=False, default=False, index=True)
    duration_days = Column(Integer, nullable=True)
    end_time = Column(DateTime, nullable=True, index=True)
    min_bid_increment = Column(Float, nullable=False, default=1.0)
    
    status = Column(
        SQLEnum(AuctionStatus, values_callable=lambda enum: [s.value for s in enum], name="auction_status"),
        nullable=False,
        default=AuctionStatus.ACTIVE,
        index=True,
    )
    best_bidder = Column(String(255), nullable=True)
    best_bidder_email = Column(String(255), nullable=True, index=True)
    winner_notified = Column(Boolean, nullable=False, default=False)
    reserved_for_winner = Column(Boolean, nullable=False, default=False)
    reserved_at = Column(DateTime, nullable=True)
    
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    
    bids = relationship(
        "BidEntryRow",
        back_populates="product",
        order_by="BidEntryRow.sequence",
        cascade="all, delete-orphan",
    )
    
    # Optimistic concurrency: every UPDATE is qualified by the read version
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', status='{self.status}', v={self.version})>"
