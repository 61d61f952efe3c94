"""
Payment verification against the Chapa gateway.

Asks the gateway whether a transaction reference was paid, bounded by a fixed
deadline. The gateway call is never retried here; retry budgets belong to the
checkout workflow, which re-invokes ``verify`` on user request.
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from gebeya.core.config import get_settings
from gebeya.core.exceptions import ChapaAPIError, VerificationFailed, VerificationTimeout
from gebeya.schemas.payment import VerifiedPayment
from gebeya.services.chapa.client import ChapaClient

logger = logging.getLogger(__name__)

SUCCESS = "success"


class PaymentVerifier:
    def __init__(self, client: ChapaClient, timeout_seconds: Optional[float] = None):
        self.client = client
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else get_settings().VERIFICATION_TIMEOUT_SECONDS
        )

    async def verify(self, tx_ref: str) -> VerifiedPayment:
        """
        Verify a payment by transaction reference.

        Returns:
            VerifiedPayment: amount, currency and payer fields reported by the gateway

        Raises:
            VerificationTimeout: the gateway did not answer within the deadline
            VerificationFailed: HTTP error, non-success status or malformed response
        """
        if not tx_ref:
            raise VerificationFailed("Incomplete transaction data: missing transaction reference")

        logger.info(f"Verifying payment {tx_ref} (deadline {self.timeout_seconds}s)")
        try:
            envelope = await asyncio.wait_for(
                self.client.verify_transaction(tx_ref),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Verification of {tx_ref} exceeded {self.timeout_seconds}s")
            raise VerificationTimeout("Verification timeout", tx_ref=tx_ref)
        except ChapaAPIError as e:
            if e.timed_out:
                raise VerificationTimeout("Verification timeout", tx_ref=tx_ref) from e
            raise VerificationFailed(str(e), tx_ref=tx_ref) from e

        return self._parse_envelope(tx_ref, envelope)

    @staticmethod
    def _parse_envelope(tx_ref: str, envelope) -> VerifiedPayment:
        if not isinstance(envelope, dict):
            raise VerificationFailed("Malformed response from payment gateway", tx_ref=tx_ref)

        payment_data = envelope.get("data")
        if envelope.get("status") != SUCCESS or not isinstance(payment_data, dict) or payment_data.get("status") != SUCCESS:
            reason = None
            if isinstance(payment_data, dict):
                reason = payment_data.get("status")
            reason = reason or envelope.get("message") or "Payment verification failed"
            logger.warning(f"Payment {tx_ref} not confirmed by gateway: {reason}")
            raise VerificationFailed(str(reason), tx_ref=tx_ref)

        try:
            payment = VerifiedPayment.model_validate({**payment_data, "tx_ref": tx_ref})
        except ValidationError as e:
            raise VerificationFailed(f"Malformed payment data: {e.errors()[0]['msg']}", tx_ref=tx_ref)

        logger.info(f"Payment {tx_ref} verified: {payment.amount} {payment.currency}")
        return payment
