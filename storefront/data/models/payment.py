from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(32), nullable=False, default="Bank Transfer")
    status = Column(String(20), nullable=False, default="pending")  # pending, completed, failed

    # last vnp_ResponseCode / vnp_TransactionNo seen from the gateway
    gateway_code = Column(String(8), nullable=True)
    transaction_no = Column(String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    order = relationship("OrderModel", back_populates="payments")
