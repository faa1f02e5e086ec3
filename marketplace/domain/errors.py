"""
Marketplace error taxonomy

Each error carries a stable `code` and the HTTP status the API layer
renders it with.
"""
from typing import Any, Dict, List, Optional


class MarketplaceError(Exception):
    """Base exception for marketplace errors"""
    code = "marketplace_error"
    status_code = 400
    retryable = False
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class ProductNotFound(MarketplaceError):
    """Raised when a product id does not exist"""
    code = "product_not_found"
    status_code = 404
    
    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class InvalidProductData(MarketplaceError):
    """Raised when product fields fail validation"""
    code = "validation_error"
    status_code = 422
    
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class BidRejected(MarketplaceError):
    """Base exception for bid rule failures"""
    code = "bid_rejected"


class NotBiddable(BidRejected):
    """Auctioning disabled, bidding period expired, or out of stock"""
    code = "not_biddable"


class AuctionClosed(BidRejected):
    """Auction is no longer active"""
    code = "auction_closed"


class SelfBidForbidden(BidRejected):
    """Owner tried to bid on their own product"""
    code = "self_bid_forbidden"
    
    def __init__(self, message: str = "You cannot bid on your own product"):
        super().__init__(message)


class BidTooLow(BidRejected):
    """Bid is below current price plus the minimum increment"""
    code = "bid_too_low"
    
    def __init__(self, minimum: float):
        super().__init__(f"Bid must be at least {minimum:.2f}")
        self.minimum = minimum
    
    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["minimum"] = self.minimum
        return data


class NoWinnerToReserve(MarketplaceError):
    """Reservation requested without a winner or before bidding ended"""
    code = "no_winner_to_reserve"
    status_code = 409


class AuctionInProgress(MarketplaceError):
    """Operation refused while an auction is running"""
    code = "auction_in_progress"
    status_code = 409


class PurchaseNotAllowed(MarketplaceError):
    """Direct purchase refused"""
    code = "purchase_not_allowed"
    status_code = 409


class ConcurrentModification(MarketplaceError):
    """The record changed between read and write"""
    code = "concurrent_modification"
    status_code = 409
    retryable = True
    
    def __init__(self, product_id: Optional[int] = None):
        message = "Product was modified concurrently, please try again"
        if product_id is not None:
            message = f"Product {product_id} was modified concurrently, please try again"
        super().__init__(message)
        self.product_id = product_id
