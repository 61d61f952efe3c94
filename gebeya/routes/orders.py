"""Orders routes - a buyer's order history and delivery acceptance."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gebeya.core.exceptions import OrderNotFound
from gebeya.dependencies import get_db
from gebeya.schemas.order import DeliveryAcceptance, OrderRead
from gebeya.services.order_service import OrderService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[OrderRead])
async def list_orders(
    user_email: str = Query(..., description="Buyer email the orders were placed with"),
    db: AsyncSession = Depends(get_db),
):
    """Orders for a buyer, newest first."""
    return await OrderService(db).list_orders(user_email)


@router.post("/{order_id}/accept", response_model=OrderRead)
async def accept_delivery(
    order_id: str,
    body: DeliveryAcceptance,
    db: AsyncSession = Depends(get_db),
):
    try:
        return await OrderService(db).accept_delivery(order_id, body.accepted_by)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
