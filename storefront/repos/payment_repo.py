# storefront/repos/payment_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.payment import PaymentModel


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        return payment

    def get_payment(self, payment_id: int) -> PaymentModel | None:
        return self.db.get(PaymentModel, payment_id)

    def get_payment_by_order(self, order_id: int) -> PaymentModel | None:
        """Latest payment for the order."""
        return self.db.execute(
            select(PaymentModel)
            .where(PaymentModel.order_id == order_id)
            .order_by(PaymentModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def update_payment_status(
        self,
        payment: PaymentModel,
        status: str,
        gateway_code: str | None = None,
        transaction_no: str | None = None,
    ) -> PaymentModel:
        payment.status = status
        if gateway_code is not None:
            payment.gateway_code = gateway_code
        if transaction_no is not None:
            payment.transaction_no = transaction_no
        self.db.commit()
        self.db.refresh(payment)
        return payment
