import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gebeya.core.enums import ActivityAction, OrderStatus
from gebeya.core.exceptions import OrderNotFound
from gebeya.models.activity_log import ActivityLog
from gebeya.models.order import Order
from gebeya.schemas.order import OrderRead

logger = logging.getLogger(__name__)


class OrderService:
    """Read access to placed orders, plus delivery acceptance by the buyer."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_orders(self, user_email: str) -> List[OrderRead]:
        """Orders placed by a buyer, newest first."""
        result = await self.db.execute(
            select(Order)
            .where(Order.user_email == user_email)
            .order_by(Order.created_at.desc(), Order.id)
        )
        return [OrderRead.model_validate(order) for order in result.scalars().all()]

    async def get_by_transaction_ref(self, tx_ref: str) -> Optional[OrderRead]:
        result = await self.db.execute(select(Order).where(Order.transaction_ref == tx_ref))
        order = result.scalar_one_or_none()
        return OrderRead.model_validate(order) if order else None

    async def accept_delivery(self, order_id: str, accepted_by: str) -> OrderRead:
        """
        Mark an order as delivered on behalf of the buyer.

        Raises:
            OrderNotFound: If no order has this id
        """
        order = await self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")

        order.status = OrderStatus.DELIVERED.value
        order.accepted_by = accepted_by
        order.delivery_accepted_at = datetime.now(timezone.utc).replace(tzinfo=None)
        self.db.add(
            ActivityLog(
                action=ActivityAction.DELIVERY_ACCEPTED.value,
                entity_type="order",
                entity_id=order.id,
                transaction_ref=order.transaction_ref,
                user_id=order.user_id,
                details={"accepted_by": accepted_by},
            )
        )
        await self.db.commit()
        logger.info(f"Order {order_id} marked as delivered by {accepted_by}")
        return OrderRead.model_validate(order)
