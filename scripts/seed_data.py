"""
Seed sample auction listings

Usage: python -m scripts.seed_data
"""
import logging

from marketplace.core.logging_config import setup_logging
from marketplace.domain.errors import InvalidProductData
from marketplace.infrastructure.database import SessionLocal, init_db
from marketplace.services import ProductService

logger = logging.getLogger("seed")

SAMPLE_AUCTIONS = [
    {
        "name": "Vintage Rolex Submariner",
        "description": "Authentic 1980s Rolex Submariner in excellent condition. Perfect for collectors.",
        "category": "Satovi",
        "current_price": 8000,
        "owner_id": "seller-1",
        "owner_email": "seller1@example.com",
        "duration_days": 7,
        "min_bid_increment": 100,
        "image": "https://images.unsplash.com/photo-1524592094714-0f0654e20314?w=300",
    },
    {
        "name": "Gaming Laptop RTX 4070",
        "description": "High-performance gaming laptop with RTX 4070, 32GB RAM, and 1TB SSD.",
        "category": "Računala",
        "current_price": 2500,
        "owner_id": "seller-2",
        "owner_email": "gamer@example.com",
        "duration_days": 5,
        "min_bid_increment": 50,
        "image": "https://images.unsplash.com/photo-1603302576837-37561b2e2302?w=300",
    },
    {
        "name": "Classic Guitar Fender Stratocaster",
        "description": "1985 Fender Stratocaster in sunburst finish. Great for musicians and collectors.",
        "category": "Glazbala",
        "current_price": 1200,
        "owner_id": "seller-3",
        "owner_email": "musician@example.com",
        "duration_days": 10,
        "min_bid_increment": 25,
        "image": "https://images.unsplash.com/photo-1510915361894-db8b60106cb1?w=300",
    },
    {
        "name": "Mountain Bike Trek Full Suspension",
        "description": "Professional mountain bike with full suspension. Perfect for trails.",
        "category": "Sport",
        "current_price": 800,
        "owner_id": "seller-4",
        "owner_email": "rider@example.com",
        "duration_days": 3,
        "min_bid_increment": 20,
        "image": "https://images.unsplash.com/photo-1576435728678-68d0fbf94e91?w=300",
    },
    {
        "name": "Antique Oak Writing Desk",
        "description": "Victorian-era oak writing desk with original brass handles.",
        "category": "Antikviteti",
        "current_price": 650,
        "owner_id": "seller-5",
        "owner_email": "antiques@example.com",
        "duration_days": 14,
        "min_bid_increment": 10,
        "image": "https://images.unsplash.com/photo-1519710164239-da123dc03ef4?w=300",
    },
]


def seed():
    init_db()
    db = SessionLocal()
    created = 0
    try:
        for sample in SAMPLE_AUCTIONS:
            try:
                record, _ = ProductService.create_product(db, {**sample, "auction_enabled": True})
            except InvalidProductData as e:
                logger.error(f"❌ Skipping {sample['name']}: {e.message}")
                continue
            created += 1
            logger.info(f"✅ {record.name} (ID {record.id}) ends {record.end_time:%Y-%m-%d %H:%M}")
    finally:
        db.close()

    logger.info(f"🌱 Seeded {created}/{len(SAMPLE_AUCTIONS)} auctions")


if __name__ == "__main__":
    setup_logging()
    seed()
