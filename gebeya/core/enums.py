"""
Shared enums and constants used across the application.
"""

from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle values stored on the orders table"""
    PROCESSING = "processing"
    ACCEPTED = "accepted"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CHAPA = "Chapa"
    COD = "COD"


class VerificationStatus(str, Enum):
    """States of a single checkout attempt."""
    PENDING = "pending"      # Verification not yet confirmed
    SUCCESS = "success"      # Gateway confirmed payment
    FAILED = "failed"        # Gateway rejected, or placement failed after payment
    TIMED_OUT = "timed_out"  # Gateway did not answer within the deadline


class ActivityAction(str, Enum):
    ORDER_PLACED = "order_placed"
    SUPPLIER_MISSING = "supplier_missing"
    DELIVERY_ACCEPTED = "delivery_accepted"


class LocalStoreKey(str, Enum):
    """Keys of the device-local key/value store"""
    CART = "cart"
    SAVED_SHIPPING_ADDRESS = "savedShippingAddress"
    FAVORITES = "favorites"

    @property
    def empty_default(self):
        # Lists for collections, objects for the address
        if self is LocalStoreKey.SAVED_SHIPPING_ADDRESS:
            return {}
        return []
