"""Checkout routes - payment verification and order placement after the Chapa redirect."""
import logging
from typing import Optional, Type

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from gebeya.core.exceptions import (
    InsufficientStock,
    MalformedCartItem,
    OrderPlacementFailed,
    SupplierNotFound,
    VariantNotFound,
    VerificationFailed,
)
from gebeya.dependencies import get_chapa_client, get_db, get_local_store
from gebeya.schemas.checkout import CheckoutVerifyRequest
from gebeya.services.chapa.client import ChapaClient
from gebeya.services.checkout_service import CheckoutWorkflow
from gebeya.services.local_store import CartCache, LocalStore
from gebeya.services.payment_verifier import PaymentVerifier

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/checkout", tags=["checkout"])

# Failure class -> HTTP status; subclasses inherit their parent's code
ERROR_STATUS_CODES = {
    MalformedCartItem: 422,
    VariantNotFound: 409,
    InsufficientStock: 409,
    SupplierNotFound: 409,
    OrderPlacementFailed: 503,
    VerificationFailed: 402,
}


def status_code_for(error_type: Optional[Type[Exception]]) -> int:
    if error_type is None:
        return 400
    for cls in error_type.__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 400


@router.post("/verify")
async def verify_checkout(
    body: CheckoutVerifyRequest,
    db: AsyncSession = Depends(get_db),
    chapa: ChapaClient = Depends(get_chapa_client),
    local_store: LocalStore = Depends(get_local_store),
):
    """Verify a Chapa payment and place the order for the cart it paid for."""
    workflow = CheckoutWorkflow(
        db=db,
        verifier=PaymentVerifier(chapa),
        cart_cache=CartCache(local_store),
    )
    outcome = await workflow.run(body, attempt=body.trusted_attempt())

    status_code = 200 if outcome.succeeded else status_code_for(outcome.error_type)
    if status_code != 200:
        logger.info(f"Checkout {body.tx_ref} answered {status_code}: {outcome.message}")
    return JSONResponse(status_code=status_code, content=outcome.to_document())
