from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, processing, shipped, delivered, cancelled
    total_price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    details = relationship(
        "OrderDetailModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderDetailModel.id",
    )
    payments = relationship(
        "PaymentModel",
        back_populates="order",
        order_by="PaymentModel.id",
    )
