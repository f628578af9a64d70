# storefront/client/reconcile.py
from dataclasses import dataclass, field
from decimal import Decimal

from storefront.client.api_client import StorefrontClient
from storefront.client.checkout import CartLine
from storefront.client.payment_return import ReturnOutcome, interpret_return
from storefront.client.session import ClientSession
from storefront.domain.status import (
    OrderStatus,
    OrderStatusValue,
    PaymentStatusValue,
    Unrecognized,
    is_terminal,
    parse_order_status,
    parse_payment_status,
    status_label,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OrderView:
    order_id: int
    total_price: Decimal
    order_status: OrderStatusValue
    payment_status: PaymentStatusValue | None
    details: list[CartLine] = field(default_factory=list)
    created_at: str | None = None

    @property
    def order_label(self) -> str:
        return status_label(self.order_status)

    @property
    def payment_label(self) -> str | None:
        return status_label(self.payment_status) if self.payment_status is not None else None

    @property
    def is_orphaned(self) -> bool:
        """Order that never got a payment and is still open."""
        return self.payment_status is None and self.order_status != OrderStatus.CANCELLED

    @property
    def is_final(self) -> bool:
        return not isinstance(self.order_status, Unrecognized) and is_terminal(self.order_status)


@dataclass
class ReturnReconciliation:
    outcome: ReturnOutcome
    order: OrderView | None


def order_view_from_payload(payload: dict) -> OrderView:
    order = payload["order"]
    payment = payload.get("payment")
    return OrderView(
        order_id=int(order["id"]),
        total_price=Decimal(str(order["totalPrice"])),
        order_status=parse_order_status(order.get("status")),
        payment_status=parse_payment_status(payment.get("status")) if payment else None,
        details=[
            CartLine(
                variant_id=int(d["variantId"]),
                quantity=int(d["quantity"]),
                price=Decimal(str(d["price"])),
            )
            for d in payload.get("details", [])
        ],
        created_at=order.get("createdAt"),
    )


class StatusReconciler:
    """
    Pull-based view of where an order and its payment stand. Runs when the
    order pages load or the gateway sends the buyer back; nothing polls.
    """

    def __init__(self, api: StorefrontClient | None = None):
        self.api = api or StorefrontClient()

    def reconcile(self, session: ClientSession, order_id: int) -> OrderView:
        # order, lines and payment come from one read on the server
        view = order_view_from_payload(self.api.get_order(session, order_id))
        logger.info(
            f"Order {order_id}: order {view.order_label}, payment {view.payment_label or 'none'}"
        )
        return view

    def list_orders(self, session: ClientSession) -> list[OrderView]:
        return [order_view_from_payload(p) for p in self.api.get_orders(session)]

    def after_return(self, session: ClientSession, query_params) -> ReturnReconciliation:
        """Success/failure page load: interpret the return params, then read the real status."""
        outcome = interpret_return(query_params)

        view = None
        if outcome.order_id is not None:
            view = self.reconcile(session, outcome.order_id)

        session.cart_count = len(self.api.get_cart(session))
        return ReturnReconciliation(outcome=outcome, order=view)
