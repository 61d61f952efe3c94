from .activity_log import ActivityLog
from .product import Product, ProductVariant
from .order import Order

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'ActivityLog',
    'Product',
    'ProductVariant',
    'Order',
]
