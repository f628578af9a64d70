# storefront/services/order_service.py
from collections import defaultdict
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_detail import OrderDetailModel
from storefront.domain.errors import NotFoundError, ConflictError
from storefront.domain.schemas import OrderDetailIn
from storefront.domain.status import (
    OrderStatus,
    PaymentStatus,
    Unrecognized,
    parse_order_status,
    parse_payment_status,
    can_transition_order,
)
from storefront.repos.order_repo import OrderRepo
from storefront.repos.payment_repo import PaymentRepo
from storefront.repos.variant_repo import VariantRepo
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


def line_total(details) -> Decimal:
    return sum((Decimal(d.price) * d.quantity for d in details), Decimal("0.00"))


def order_to_dict(order: OrderModel) -> dict:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "total_price": order.total_price,
        "status": order.status,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def payment_to_dict(payment) -> dict | None:
    if payment is None:
        return None
    return {
        "id": payment.id,
        "order_id": payment.order_id,
        "user_id": payment.user_id,
        "amount": payment.amount,
        "payment_method": payment.payment_method,
        "status": payment.status,
        "gateway_code": payment.gateway_code,
        "transaction_no": payment.transaction_no,
        "created_at": payment.created_at,
        "updated_at": payment.updated_at,
    }


def order_view(order: OrderModel) -> dict:
    """Order + lines + latest payment, as one consistent read."""
    payment = order.payments[-1] if order.payments else None
    return {
        "order": order_to_dict(order),
        "details": [
            {
                "id": d.id,
                "order_id": d.order_id,
                "variant_id": d.variant_id,
                "quantity": d.quantity,
                "price": d.price,
            }
            for d in order.details
        ],
        "payment": payment_to_dict(payment),
    }


class OrderService:
    """
    Order boundary: turns a cart snapshot into an Order with frozen lines.
    The cart itself is not touched here; clearing it is the caller's step.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.payments = PaymentRepo(db)
        self.variants = VariantRepo(db)
        self.notification_service = notification_service or NotificationService()

    def create_order(self, user_id: int, total_price: Decimal, details: list[OrderDetailIn]) -> dict:
        """
        1. rejects an empty snapshot
        2. checks each variant exists and has enough stock
        3. checks total_price == sum(price * quantity)
        4. persists order + lines in one transaction
        5. queues a notification
        """
        if not details:
            raise ValueError("Cannot create an order from an empty cart")

        requested = defaultdict(int)
        for d in details:
            if d.quantity < 1:
                raise ValueError(f"Invalid quantity {d.quantity} for variant {d.variant_id}")
            requested[d.variant_id] += d.quantity

        variants = self.variants.get_variants(requested)
        for variant_id, quantity in requested.items():
            variant = variants.get(variant_id)
            if variant is None:
                raise ValueError(f"Variant {variant_id} does not exist")
            if quantity > variant.stock:
                raise ValueError(
                    f"Only {variant.stock} left in stock for variant {variant_id}, requested {quantity}"
                )

        expected = line_total(details).quantize(CENT)
        if Decimal(total_price).quantize(CENT) != expected:
            raise ValueError(f"Total price {total_price} does not match order lines ({expected})")

        order = OrderModel(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total_price=expected,
        )
        lines = [
            OrderDetailModel(variant_id=d.variant_id, quantity=d.quantity, price=d.price)
            for d in details
        ]

        created = self.repo.create_order(order, lines)

        logger.info(
            f"Order {created.id} created for user {user_id}: "
            f"{len(lines)} lines, total {created.total_price}"
        )

        self.notification_service.send_order_notification(user_id, created.id)

        return order_to_dict(created)

    def _owned_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFoundError(f"Order {order_id} does not exist")

        if order.user_id != user_id:
            raise PermissionError("Access to this order is denied")

        return order

    def get_order(self, order_id: int, user_id: int) -> dict:
        return order_view(self._owned_order(order_id, user_id))

    def list_orders(self, user_id: int) -> list[dict]:
        return [order_view(o) for o in self.repo.get_orders_by_user(user_id)]

    def list_all_orders(self, status: str | None = None) -> list[dict]:
        """Admin transactions view: every order with its lines and latest payment."""
        if status is not None:
            target = parse_order_status(status)
            if isinstance(target, Unrecognized):
                raise ValueError(f"Unknown order status '{status}'")
            status = target.value
        return [order_view(o) for o in self.repo.get_all_orders(status)]

    def update_status(self, order_id: int, status: str) -> dict:
        target = parse_order_status(status)
        if isinstance(target, Unrecognized):
            raise ValueError(f"Unknown order status '{status}'")

        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} does not exist")

        current = parse_order_status(order.status)
        if isinstance(current, Unrecognized):
            # legacy row, let the admin put it back on the rails
            logger.warning(f"Order {order_id} had unrecognized status '{order.status}'")
        elif not can_transition_order(current, target):
            raise ConflictError(
                f"Order {order_id} cannot move from {current.value} to {target.value}"
            )

        updated = self.repo.update_order_status(order, target.value)
        logger.info(f"Order {order_id} status -> {target.value}")
        return order_to_dict(updated)

    def cancel_order(self, order_id: int, user_id: int) -> dict:
        """
        Compensating action for a checkout whose payment step failed.
        A still-pending payment for the order is failed along with it.
        """
        order = self._owned_order(order_id, user_id)

        current = parse_order_status(order.status)
        if current not in (OrderStatus.PENDING, OrderStatus.PROCESSING):
            raise ConflictError(f"Order {order_id} cannot be cancelled in status {order.status}")

        for payment in order.payments:
            if parse_payment_status(payment.status) == PaymentStatus.PENDING:
                self.payments.update_payment_status(payment, PaymentStatus.FAILED.value)
                logger.info(f"Payment {payment.id} of cancelled order {order_id} marked failed")

        self.repo.update_order_status(order, OrderStatus.CANCELLED.value)
        logger.info(f"Order {order_id} cancelled by user {user_id}")
        return order_view(order)

    def sweep_orphaned_orders(self, ttl_seconds: int, now: datetime | None = None) -> list[int]:
        """Cancel pending orders older than ``ttl_seconds`` that never got a payment."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=ttl_seconds)

        orphans = self.repo.get_orphaned_orders(OrderStatus.PENDING.value, cutoff)
        for order in orphans:
            order.status = OrderStatus.CANCELLED.value
            logger.info(f"Orphaned order {order.id} (user {order.user_id}) cancelled")
        self.repo.commit()

        return [o.id for o in orphans]
