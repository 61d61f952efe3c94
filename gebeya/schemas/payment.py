"""
Schemas for payment gateway verification results.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ConfigDict

from gebeya.schemas.base import BaseSchema


class VerifiedPayment(BaseSchema):
    """
    A payment the gateway reported as successful.

    Only lives in memory between verification and order placement; the
    order record keeps a snapshot of it (see ``gateway_snapshot``).
    """
    model_config = ConfigDict(extra="ignore")

    tx_ref: str
    status: str
    amount: Optional[float] = None
    currency: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    updated_at: Optional[str] = None
    created_at: Optional[str] = None

    def gateway_snapshot(self) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        return {
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "verified_at": self.updated_at or now,
            "createdAt": self.created_at or now,
        }
