"""
Schemas for order records and order placement results.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from gebeya.schemas.base import BaseSchema, CamelSchema


class OrderRead(BaseSchema):
    id: str
    created_at: datetime
    user_id: str
    user_email: Optional[str] = None
    cart_items: List[Dict[str, Any]]
    total_amount: float
    payment_method: str
    shipping_address: Optional[Dict[str, Any]] = None
    customer_details: Optional[Dict[str, Any]] = None
    status: str
    payment_status: str
    transaction_ref: str
    gateway_response: Optional[Dict[str, Any]] = None
    accepted_by: Optional[str] = None
    delivery_accepted_at: Optional[datetime] = None


class OrderConfirmation(CamelSchema):
    """Payload handed to the order confirmation screen."""
    order_id: str
    tx_ref: str
    amount: float


class PlacementResult(BaseSchema):
    order: OrderRead
    # False when an order for the transaction reference already existed
    created: bool = True
    warnings: List[str] = Field(default_factory=list)

    @property
    def confirmation(self) -> OrderConfirmation:
        return OrderConfirmation(
            order_id=self.order.id,
            tx_ref=self.order.transaction_ref,
            amount=self.order.total_amount,
        )


class DeliveryAcceptance(CamelSchema):
    accepted_by: str
