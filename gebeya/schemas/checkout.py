"""
Schemas for the checkout workflow: the request coming back from the payment
page, the per-attempt state carried between retries, and the outcome.
"""

from typing import Any, Dict, List, Optional, Type

from pydantic import Field, PrivateAttr

from gebeya.core.enums import PaymentMethod, VerificationStatus
from gebeya.schemas.base import CamelSchema
from gebeya.schemas.cart import CustomerDetails, ShippingAddress
from gebeya.schemas.order import OrderConfirmation
from gebeya.schemas.payment import VerifiedPayment


class CheckoutRequest(CamelSchema):
    tx_ref: str = ""
    amount: float = 0.0
    user_id: str = ""
    user_email: Optional[str] = None
    # Raw cart JSON; structural validation happens in order placement
    cart_items: List[Any] = Field(default_factory=list)
    shipping_address: ShippingAddress = Field(default_factory=ShippingAddress)
    customer_details: CustomerDetails = Field(default_factory=CustomerDetails)
    payment_method: str = PaymentMethod.CHAPA.value


class CheckoutAttempt(CamelSchema):
    """
    State of one checkout across user retries.

    Handed back to the caller with every outcome and passed in again on retry,
    so the retry budget and an already verified payment survive between calls.
    """
    tx_ref: str
    status: VerificationStatus = VerificationStatus.PENDING
    retry_count: int = 0
    payment: Optional[VerifiedPayment] = None


class CheckoutOutcome(CamelSchema):
    status: VerificationStatus
    message: str
    attempt: CheckoutAttempt
    confirmation: Optional[OrderConfirmation] = None
    can_retry: bool = False
    warnings: List[str] = Field(default_factory=list)
    # Exception class name for failures, e.g. "InsufficientStock"
    error: Optional[str] = None
    detail: Optional[Dict[str, Any]] = None

    _error_type: Optional[Type[Exception]] = PrivateAttr(default=None)

    def with_error_type(self, error_type: Type[Exception]) -> "CheckoutOutcome":
        self._error_type = error_type
        return self

    @property
    def error_type(self) -> Optional[Type[Exception]]:
        """Class of the failure, kept off the wire."""
        return self._error_type

    @property
    def succeeded(self) -> bool:
        return self.status == VerificationStatus.SUCCESS and self.confirmation is not None


class CheckoutVerifyRequest(CheckoutRequest):
    """
    Body of ``POST /checkout/verify``; ``attempt`` is echoed back on retry.

    Only the retry budget of an echoed attempt is honoured. A payment it
    carries came from the client and is never trusted; see ``trusted_attempt``.
    """
    attempt: Optional[CheckoutAttempt] = None

    def trusted_attempt(self) -> Optional[CheckoutAttempt]:
        if self.attempt is None:
            return None
        return self.attempt.model_copy(update={"payment": None})
