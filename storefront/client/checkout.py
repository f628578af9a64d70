# storefront/client/checkout.py
"""
"Place Order" pipeline as the storefront runs it:

    read cart -> create order -> request payment url -> clear cart -> redirect

Steps run strictly one after another and none of them is retried. The
pipeline is not atomic: once the order exists, a failing payment-url call
leaves an order without a payment. What happens then is the compensation
policy:

``keep``   (default) clear the cart anyway and leave the orphaned order for
           the out-of-band sweep.
``cancel`` cancel the order right away and leave the cart as it was.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable

import requests

from storefront.client.api_client import StorefrontClient
from storefront.client.session import ClientSession, SessionClosedError, AuthenticationExpired
from storefront.utils.settings import CHECKOUT_COMPENSATION
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

COMPENSATION_KEEP = "keep"
COMPENSATION_CANCEL = "cancel"

EMPTY_CART_MESSAGE = "Your cart is empty."
SESSION_EXPIRED_MESSAGE = "Your session has expired, please log in again."
ORDER_FAILED_MESSAGE = "Could not place your order."
PAYMENT_FAILED_MESSAGE = "Could not start the payment for your order."
CART_FAILED_MESSAGE = "Could not load your cart."


@dataclass(frozen=True)
class CartLine:
    variant_id: int
    quantity: int
    price: Decimal


class CheckoutStatus(str, Enum):
    REDIRECTED = "redirected"
    REJECTED = "rejected"
    ORDER_FAILED = "order_failed"
    PAYMENT_FAILED = "payment_failed"


@dataclass
class CheckoutResult:
    status: CheckoutStatus
    message: str | None = None
    order_id: int | None = None
    total_price: Decimal | None = None
    payment_url: str | None = None
    cart_cleared: bool = False
    compensated: bool = False

    @property
    def ok(self) -> bool:
        return self.status == CheckoutStatus.REDIRECTED


def snapshot_from_cart(items: Iterable[dict]) -> list[CartLine]:
    """Turn a ``GET /cart`` payload into checkout lines, prices read from the embedded variant."""
    return [
        CartLine(
            variant_id=int(item["variantId"]),
            quantity=int(item["quantity"]),
            price=Decimal(str(item["variant"]["price"])),
        )
        for item in items
    ]


def order_total(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.price * line.quantity for line in lines), Decimal("0"))


def error_detail(exc: Exception) -> str | None:
    resp = getattr(exc, "response", None)
    if resp is None:
        return None
    try:
        detail = resp.json().get("detail")
    except ValueError:
        return None
    return detail if isinstance(detail, str) else None


def _log_toast(level: str, message: str):
    logger.info(f"[toast:{level}] {message}")


def _log_navigate(url: str):
    logger.info(f"Navigate to {url}")


class CheckoutOrchestrator:
    def __init__(
        self,
        api: StorefrontClient | None = None,
        navigate: Callable[[str], None] | None = None,
        notify: Callable[[str, str], None] | None = None,
        compensation: str | None = None,
    ):
        self.api = api or StorefrontClient()
        self.navigate = navigate or _log_navigate
        self.notify = notify or _log_toast
        self.compensation = (compensation or CHECKOUT_COMPENSATION).lower()
        if self.compensation not in (COMPENSATION_KEEP, COMPENSATION_CANCEL):
            raise ValueError(f"Unknown checkout compensation policy '{self.compensation}'")

    def _fail(self, result: CheckoutResult, level: str = "error") -> CheckoutResult:
        self.notify(level, result.message)
        return result

    def _validate(self, session: ClientSession, lines: list[CartLine]) -> str | None:
        try:
            session.ensure_open()
        except SessionClosedError:
            return SESSION_EXPIRED_MESSAGE

        if not lines:
            return EMPTY_CART_MESSAGE

        for line in lines:
            if line.quantity < 1:
                return f"Invalid quantity {line.quantity} for item {line.variant_id}."
            if line.price < 0:
                return f"Invalid price for item {line.variant_id}."
        return None

    def place_order(self, session: ClientSession) -> CheckoutResult:
        """Read the cart as it is right now and check it out."""
        try:
            items = self.api.get_cart(session)
        except (requests.RequestException, SessionClosedError) as e:
            logger.error(f"Could not read cart of user {session.user_id}: {e}")
            return self._fail(
                CheckoutResult(CheckoutStatus.ORDER_FAILED, message=self._message(e, CART_FAILED_MESSAGE))
            )
        return self.checkout(session, snapshot_from_cart(items))

    def checkout(self, session: ClientSession, cart_snapshot: Iterable[CartLine]) -> CheckoutResult:
        lines = list(cart_snapshot)

        problem = self._validate(session, lines)
        if problem:
            return self._fail(CheckoutResult(CheckoutStatus.REJECTED, message=problem), level="warning")

        total = order_total(lines)
        details = [
            {"variantId": line.variant_id, "quantity": line.quantity, "price": line.price}
            for line in lines
        ]

        # 1. order
        try:
            order = self.api.create_order(session, total, details)
        except (requests.RequestException, SessionClosedError) as e:
            logger.error(f"Order creation failed for user {session.user_id}: {e}")
            return self._fail(
                CheckoutResult(
                    CheckoutStatus.ORDER_FAILED,
                    message=self._message(e, ORDER_FAILED_MESSAGE),
                    total_price=total,
                )
            )

        order_id = int(order["id"])
        logger.info(f"Order {order_id} created for user {session.user_id}, total {total}")

        # 2. payment url
        try:
            payment_url = self.api.create_payment_url(session, order_id, total)
        except (requests.RequestException, SessionClosedError) as e:
            logger.error(f"Payment url request failed for order {order_id}: {e}")
            return self._payment_failed(session, order_id, total, e)

        # 3. cart, not tied to the payment outcome
        cart_cleared = self._clear_cart(session)

        # 4. off to the gateway
        self.navigate(payment_url)
        return CheckoutResult(
            CheckoutStatus.REDIRECTED,
            order_id=order_id,
            total_price=total,
            payment_url=payment_url,
            cart_cleared=cart_cleared,
        )

    def _payment_failed(self, session, order_id, total, exc) -> CheckoutResult:
        result = CheckoutResult(
            CheckoutStatus.PAYMENT_FAILED,
            message=self._message(exc, PAYMENT_FAILED_MESSAGE),
            order_id=order_id,
            total_price=total,
        )

        if isinstance(exc, AuthenticationExpired):
            return self._fail(result)

        if self.compensation == COMPENSATION_CANCEL:
            try:
                self.api.cancel_order(session, order_id)
                result.compensated = True
                logger.info(f"Order {order_id} cancelled after payment failure")
            except (requests.RequestException, SessionClosedError) as e:
                logger.error(f"Could not cancel order {order_id}: {e}")
            return self._fail(result)

        # orphaned order: no payment, cart gone
        result.cart_cleared = self._clear_cart(session)
        logger.warning(f"Order {order_id} left without payment")
        return self._fail(result)

    def _clear_cart(self, session: ClientSession) -> bool:
        try:
            self.api.clear_cart(session)
        except (requests.RequestException, SessionClosedError) as e:
            logger.warning(f"Could not clear cart of user {session.user_id}: {e}")
            return False
        session.cart_count = 0
        return True

    @staticmethod
    def _message(exc: Exception, fallback: str) -> str:
        if isinstance(exc, (AuthenticationExpired, SessionClosedError)):
            return SESSION_EXPIRED_MESSAGE
        detail = error_detail(exc)
        return f"{fallback} {detail}" if detail else fallback
