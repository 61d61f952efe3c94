"""
Checkout workflow

Runs one checkout attempt end to end, in order:

1. If an order already exists for the transaction reference, confirm it
2. Verify the payment with the gateway and check the paid amount (skipped
   when the attempt already carries a verified payment for the same
   reference, i.e. the user is retrying placement only)
3. Place the order in a single transaction
4. Clear the local cart (best effort; the order is final either way)

Every failure is caught here, classified, logged in full and turned into a
short message for the buyer. Retry state lives in ``CheckoutAttempt``, which
the caller passes back in on the next try.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gebeya.core.config import get_settings
from gebeya.core.enums import VerificationStatus
from gebeya.core.exceptions import (
    InsufficientStock,
    LocalStoreError,
    MalformedCartItem,
    OrderPlacementFailed,
    SupplierNotFound,
    VariantNotFound,
    VerificationFailed,
    VerificationTimeout,
)
from gebeya.schemas.cart import CartItem
from gebeya.schemas.checkout import CheckoutAttempt, CheckoutOutcome, CheckoutRequest
from gebeya.schemas.order import PlacementResult
from gebeya.services.local_store import CartCache
from gebeya.services.order_placement import OrderPlacementService
from gebeya.services.order_service import OrderService
from gebeya.services.payment_verifier import PaymentVerifier

logger = logging.getLogger(__name__)


def generate_tx_ref(user_id: str, now: Optional[datetime] = None) -> str:
    """Transaction reference in the form ``TX-<epoch millis>-<first 5 chars of user id>``."""
    millis = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    return f"TX-{millis}-{user_id[:5]}"


def cart_total(items: Iterable[Any]) -> float:
    """Order total for a cart, rounded to 2 decimal places."""
    parsed = [item if isinstance(item, CartItem) else CartItem.model_validate(item) for item in items]
    return round(sum(item.line_total for item in parsed), 2)


def _amount_matches(paid: Optional[float], expected: float) -> bool:
    # Gateways that omit the amount are trusted on status alone
    return paid is None or abs(paid - expected) < 0.005


class CheckoutWorkflow:
    def __init__(
        self,
        db: AsyncSession,
        verifier: PaymentVerifier,
        cart_cache: Optional[CartCache] = None,
        max_retries: Optional[int] = None,
        placement: Optional[OrderPlacementService] = None,
    ):
        self.db = db
        self.verifier = verifier
        self.cart_cache = cart_cache
        self.max_retries = max_retries if max_retries is not None else get_settings().MAX_VERIFICATION_RETRIES
        self.placement = placement or OrderPlacementService(db)
        self.orders = OrderService(db)

    async def run(self, request: CheckoutRequest, attempt: Optional[CheckoutAttempt] = None) -> CheckoutOutcome:
        if attempt is None or attempt.tx_ref != request.tx_ref:
            attempt = CheckoutAttempt(tx_ref=request.tx_ref)

        if not request.tx_ref or not request.user_id or not request.amount or not request.cart_items:
            return self._failure(
                attempt,
                MalformedCartItem("Incomplete transaction data"),
                VerificationStatus.FAILED,
                "Incomplete transaction data. Please start checkout again.",
                can_retry=False,
            )

        try:
            async with self.db.begin():
                existing = await self.orders.get_by_transaction_ref(request.tx_ref)
        except SQLAlchemyError as e:
            return self._failure(
                attempt,
                OrderPlacementFailed(f"order lookup failed: {e}"),
                VerificationStatus.FAILED,
                "We could not reach the order store. Please retry.",
                can_retry=True,
            )
        if existing is not None:
            logger.info(f"Checkout {request.tx_ref} already produced order {existing.id}")
            placed = PlacementResult(order=existing, created=False)
            return self._success(attempt.model_copy(update={"status": VerificationStatus.SUCCESS}), placed)

        if attempt.payment is not None and attempt.payment.tx_ref != request.tx_ref:
            logger.warning(
                f"Discarding payment for {attempt.payment.tx_ref} carried by attempt for {request.tx_ref}"
            )
            attempt = attempt.model_copy(update={"payment": None})

        if attempt.payment is None:
            if attempt.retry_count > self.max_retries:
                return self._failure(
                    attempt,
                    VerificationFailed("Verification retries exhausted", tx_ref=request.tx_ref),
                    attempt.status,
                    f"We could not confirm your payment. Please contact support with reference {request.tx_ref}.",
                    can_retry=False,
                )
            try:
                payment = await self.verifier.verify(request.tx_ref)
            except VerificationTimeout as e:
                return self._verification_failure(
                    attempt, e, VerificationStatus.TIMED_OUT,
                    "Payment verification timed out.",
                )
            except VerificationFailed as e:
                return self._verification_failure(
                    attempt, e, VerificationStatus.FAILED,
                    f"Verification Error: {e.reason}",
                )
            if not _amount_matches(payment.amount, request.amount):
                return self._failure(
                    attempt,
                    VerificationFailed(
                        f"Gateway reported {payment.amount} for {payment.tx_ref}, "
                        f"expected {request.amount} for {request.tx_ref}",
                        tx_ref=request.tx_ref,
                    ),
                    VerificationStatus.FAILED,
                    f"The paid amount does not match your order. Please contact support with reference {request.tx_ref}.",
                    can_retry=False,
                )
            attempt = attempt.model_copy(update={"payment": payment, "status": VerificationStatus.SUCCESS})
            logger.info(f"Payment Successful! Processing order for {request.tx_ref}")
        else:
            logger.info(f"Payment for {request.tx_ref} already verified; retrying order placement only")

        try:
            placed = await self.placement.place_order(
                payment=attempt.payment,
                cart_items=request.cart_items,
                user_id=request.user_id,
                user_email=request.user_email,
                shipping_address=request.shipping_address,
                customer_details=request.customer_details,
                payment_method=request.payment_method,
                amount=request.amount,
            )
        except MalformedCartItem as e:
            return self._failure(
                attempt, e, VerificationStatus.FAILED,
                f"Your cart could not be processed: {e}",
                can_retry=False,
            )
        except (VariantNotFound, InsufficientStock, SupplierNotFound) as e:
            # Verbatim, so the buyer knows which item to change
            return self._failure(attempt, e, VerificationStatus.FAILED, str(e), can_retry=False)
        except OrderPlacementFailed as e:
            return self._failure(
                attempt, e, VerificationStatus.FAILED,
                "Your payment was received but the order could not be saved. "
                "Please retry; you will not be charged again.",
                can_retry=True,
            )

        self._clear_cart()
        return self._success(attempt, placed)

    def _clear_cart(self) -> None:
        if self.cart_cache is None:
            return
        try:
            self.cart_cache.clear()
        except LocalStoreError as e:
            logger.error(f"Failed to clear cart from local store (order still placed): {e}")

    def _success(self, attempt: CheckoutAttempt, placed: PlacementResult) -> CheckoutOutcome:
        return CheckoutOutcome(
            status=VerificationStatus.SUCCESS,
            message="Order Confirmed!",
            attempt=attempt,
            confirmation=placed.confirmation,
            can_retry=False,
            warnings=placed.warnings,
        )

    def _verification_failure(
        self,
        attempt: CheckoutAttempt,
        error: VerificationFailed,
        status: VerificationStatus,
        message: str,
    ) -> CheckoutOutcome:
        retry_count = attempt.retry_count + 1
        can_retry = retry_count <= self.max_retries
        if not can_retry:
            message = f"{message} Please contact support with reference {attempt.tx_ref}."
        updated = attempt.model_copy(update={"retry_count": retry_count})
        return self._failure(updated, error, status, message, can_retry=can_retry)

    def _failure(
        self,
        attempt: CheckoutAttempt,
        error: Exception,
        status: VerificationStatus,
        message: str,
        can_retry: bool,
    ) -> CheckoutOutcome:
        logger.error(
            f"Checkout {attempt.tx_ref or '<no tx_ref>'} failed with {type(error).__name__}: {error} "
            f"(retry {attempt.retry_count}/{self.max_retries}, can_retry={can_retry})"
        )
        return CheckoutOutcome(
            status=status,
            message=message,
            attempt=attempt.model_copy(update={"status": status}),
            can_retry=can_retry,
            error=type(error).__name__,
            detail=self._detail(error),
        ).with_error_type(type(error))

    @staticmethod
    def _detail(error: Exception) -> Optional[Dict[str, Any]]:
        if isinstance(error, InsufficientStock):
            return {
                "itemId": error.item_id,
                "variantId": error.variant_id,
                "available": error.available,
                "requested": error.requested,
            }
        if isinstance(error, VariantNotFound):
            return {"itemId": error.item_id, "variantId": error.variant_id}
        if isinstance(error, SupplierNotFound):
            return {"productId": error.product_id}
        if isinstance(error, (OrderPlacementFailed, VerificationFailed)):
            return {"reason": error.reason}
        return None
