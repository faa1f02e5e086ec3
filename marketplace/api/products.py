"""
Product API Routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.dependencies import get_db
from marketplace.domain.record import Category, utcnow
from marketplace.schemas import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    PurchaseRequest,
)
from marketplace.services import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(request: ProductCreate, db: Session = Depends(get_db)):
    """Create a new product, optionally with an auction"""
    record, now = ProductService.create_product(db, request.model_dump())
    return ProductResponse.from_record(record, now)


@router.get("", response_model=ProductListResponse)
async def list_products(
    category: Optional[Category] = None,
    bidding: Optional[bool] = None,
    owner_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List products newest first"""
    records = ProductService.list_products(
        db,
        category=category.value if category else None,
        auction_enabled=bidding,
        owner_id=owner_id,
        limit=limit,
        offset=offset,
    )
    now = utcnow()
    return ProductListResponse(
        total=len(records),
        products=[ProductResponse.from_record(record, now) for record in records],
    )


@router.get("/util/categories")
async def get_categories():
    """Available product categories"""
    return {"categories": [category.value for category in Category]}


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: Session = Depends(get_db)):
    record = ProductService.get_product(db, product_id)
    return ProductResponse.from_record(record, utcnow())


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: int, request: ProductUpdate, db: Session = Depends(get_db)):
    """
    Update a product

    Bid-controlled fields in the payload are ignored; once a bid exists,
    price, duration, end time and increment are ignored too.
    """
    record, now = ProductService.update_product(db, product_id, request.model_dump(exclude_unset=True))
    return ProductResponse.from_record(record, now)


@router.delete("/{product_id}")
async def delete_product(product_id: int, db: Session = Depends(get_db)):
    ProductService.delete_product(db, product_id)
    return {"success": True, "message": f"Product {product_id} deleted"}


@router.post("/{product_id}/purchase", response_model=ProductResponse)
async def purchase_product(product_id: int, request: PurchaseRequest, db: Session = Depends(get_db)):
    """Buy directly; stock reaching zero marks the product sold"""
    record, now = ProductService.purchase(db, product_id, request.quantity)
    return ProductResponse.from_record(record, now)


@router.post("/{product_id}/cancel", response_model=ProductResponse)
async def cancel_auction(product_id: int, db: Session = Depends(get_db)):
    """Cancel an active auction that has no bids"""
    record, now = ProductService.cancel_auction(db, product_id)
    return ProductResponse.from_record(record, now)
