"""
Core module exports.
"""
from .enums import (
    OrderStatus,
    PaymentStatus,
    PaymentMethod,
    VerificationStatus,
    LocalStoreKey,
    ActivityAction,
)

from .exceptions import (
    BaseServiceError,
    CheckoutError,
    MalformedCartItem,
    VariantNotFound,
    InsufficientStock,
    SupplierNotFound,
    OrderPlacementFailed,
    PaymentServiceError,
    ChapaAPIError,
    VerificationFailed,
    VerificationTimeout,
    OrderNotFound,
    LocalStoreError,
)
