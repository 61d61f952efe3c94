# gebeya/models/order.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, TIMESTAMP
from sqlalchemy.sql import func

from gebeya.core.enums import OrderStatus, PaymentStatus
from gebeya.database import Base, JSONType


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_order_id() -> str:
    return uuid.uuid4().hex


class Order(Base):
    """
    A placed order.

    Written once by the order placement transaction, in the same unit of work
    as the stock decrements it depends on. Only the delivery acceptance fields
    change afterwards.
    """
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_order_id)

    created_at = Column(TIMESTAMP(timezone=False), default=_utcnow, server_default=func.now(), nullable=False)

    user_id = Column(String, nullable=False, index=True)
    user_email = Column(String, nullable=True, index=True)

    # Cart line items as submitted, each enriched with "supplierId"
    cart_items = Column(JSONType, nullable=False, default=list)
    total_amount = Column(Float, nullable=False)
    payment_method = Column(String, nullable=False)
    shipping_address = Column(JSONType, nullable=True)
    customer_details = Column(JSONType, nullable=True)

    status = Column(String, nullable=False, default=OrderStatus.PROCESSING.value)
    payment_status = Column(String, nullable=False, default=PaymentStatus.SUCCESS.value)

    # One order per gateway transaction; the constraint backs retry idempotence
    transaction_ref = Column(String, nullable=False, unique=True, index=True)
    gateway_response = Column(JSONType, nullable=True)

    accepted_by = Column(String, nullable=True)
    delivery_accepted_at = Column(TIMESTAMP(timezone=False), nullable=True)

    def __repr__(self) -> str:
        return f"<Order id={self.id} tx_ref={self.transaction_ref} status={self.status}>"
