from typing import Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class CheckoutError(BaseServiceError):
    """Base exception for checkout and order placement errors."""
    pass

class MalformedCartItem(CheckoutError):
    """Raised when cart data fails structural validation before any store access."""
    pass

class VariantNotFound(CheckoutError):
    """Raised when a cart item references a variant the catalog does not have."""

    def __init__(self, item_id: str, variant_id: str, description: Optional[str] = None):
        self.item_id = item_id
        self.variant_id = variant_id
        self.description = description or item_id
        super().__init__(f"Product variant {self.description} not found.")

class InsufficientStock(CheckoutError):
    """Raised when a variant does not hold enough stock for the requested quantity."""

    def __init__(self, item_id: str, variant_id: str, available, requested: int, description: Optional[str] = None):
        self.item_id = item_id
        self.variant_id = variant_id
        self.available = available
        self.requested = requested
        self.description = description or item_id
        shown = "N/A" if available is None else available
        super().__init__(
            f"Insufficient stock for {self.description}. Available: {shown}, Requested: {requested}"
        )

class SupplierNotFound(CheckoutError):
    """Raised when supplier attribution is required but cannot be resolved."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Supplier ID missing for product {product_id}")

class OrderPlacementFailed(CheckoutError):
    """Raised when the order transaction aborts for a reason outside the business rules."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Order placement failed: {reason}")

class PaymentServiceError(BaseServiceError):
    """Base exception for payment gateway errors."""
    pass

class ChapaAPIError(PaymentServiceError):
    """Raised when Chapa API calls fail."""

    def __init__(self, message: str, status_code: Optional[int] = None, timed_out: bool = False):
        self.status_code = status_code
        self.timed_out = timed_out
        super().__init__(message)

class VerificationFailed(PaymentServiceError):
    """Raised when the gateway does not confirm a payment."""

    def __init__(self, reason: str, tx_ref: Optional[str] = None):
        self.reason = reason
        self.tx_ref = tx_ref
        super().__init__(reason)

class VerificationTimeout(VerificationFailed):
    """Raised when the gateway does not answer within the verification deadline."""
    pass

class OrderNotFound(BaseServiceError):
    """Raised when an order is not found."""
    pass

class LocalStoreError(BaseServiceError):
    """Raised when the device-local key/value store cannot be read or written."""
    pass
