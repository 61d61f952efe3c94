# gebeya/models/activity_log.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from gebeya.database import Base, JSONType

class ActivityLog(Base):
    """
    Records significant checkout activities for auditing and monitoring.

    This includes:
    - Orders placed (written in the same transaction as the order)
    - Supplier attribution warnings raised while placing an order
    - Delivery acceptance
    """
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(50), nullable=False, index=True)  # 'order_placed', 'supplier_missing', ...
    entity_type = Column(String(50), nullable=False, index=True)  # 'order', 'product'
    entity_id = Column(String(100), nullable=False, index=True)
    transaction_ref = Column(String(100), nullable=True, index=True)

    details = Column(JSONType, nullable=True)

    user_id = Column(String(128), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.entity_type} {self.entity_id}>"
