# storefront/repos/order_repo.py
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_detail import OrderDetailModel
from storefront.data.models.payment import PaymentModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel, details: list[OrderDetailModel]) -> OrderModel:
        """Order and its lines go in one transaction, all or nothing."""
        try:
            order.details = details
            self.db.add(order)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.details), selectinload(OrderModel.payments))
        ).scalar_one_or_none()

    def get_orders_by_user(self, user_id: int) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .options(selectinload(OrderModel.details), selectinload(OrderModel.payments))
            ).scalars().all()
        )

    def get_all_orders(self, status: str | None = None) -> list[OrderModel]:
        query = select(OrderModel)
        if status is not None:
            query = query.where(OrderModel.status == status)
        return list(
            self.db.execute(
                query
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .options(selectinload(OrderModel.details), selectinload(OrderModel.payments))
            ).scalars().all()
        )

    def update_order_status(self, order: OrderModel, status: str) -> OrderModel:
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        return order

    def get_orphaned_orders(self, status: str, created_before: datetime) -> list[OrderModel]:
        """Orders in ``status`` older than ``created_before`` with no payment row at all."""
        has_payment = select(PaymentModel.id).where(PaymentModel.order_id == OrderModel.id).exists()
        return list(
            self.db.execute(
                select(OrderModel).where(
                    OrderModel.status == status,
                    OrderModel.created_at < created_before,
                    ~has_payment,
                )
            ).scalars().all()
        )

    def commit(self):
        self.db.commit()
