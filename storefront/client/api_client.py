# storefront/client/api_client.py
from decimal import Decimal

from storefront.client.session import ClientSession, AuthenticationExpired
from storefront.utils.retry import http_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class StorefrontClient:
    """
    REST wrappers used by checkout and the order pages.
    Only GETs are retried; a POST that timed out may already have happened.
    """

    def _request(self, session: ClientSession, method: str, path: str, json=None):
        session.ensure_open()
        url = session.url(path)
        logger.info(f"StorefrontClient {method} {url}")

        resp = session.http.request(
            method,
            url,
            params={"user_id": session.user_id},
            json=_jsonable(json) if json is not None else None,
            timeout=session.timeout,
        )

        if resp.status_code == 401:
            session.logout()
            raise AuthenticationExpired(
                f"401 for {method} {url}, redirect to {AuthenticationExpired.login_path}",
                response=resp,
            )

        resp.raise_for_status()
        return resp.json()

    # cart
    @http_retry()
    def get_cart(self, session: ClientSession) -> list[dict]:
        return self._request(session, "GET", "/cart")

    def clear_cart(self, session: ClientSession) -> dict:
        return self._request(session, "DELETE", "/cart/clear")

    # orders
    def create_order(self, session: ClientSession, total_price: Decimal, details: list[dict]) -> dict:
        return self._request(
            session,
            "POST",
            "/order/create",
            json={"totalPrice": total_price, "details": details},
        )

    @http_retry()
    def get_orders(self, session: ClientSession) -> list[dict]:
        return self._request(session, "GET", "/orders")

    @http_retry()
    def get_order(self, session: ClientSession, order_id: int) -> dict:
        return self._request(session, "GET", f"/orders/{order_id}")

    def update_order_status(self, session: ClientSession, order_id: int, status: str) -> dict:
        return self._request(session, "PATCH", f"/orders/{order_id}/status", json={"status": status})

    def cancel_order(self, session: ClientSession, order_id: int) -> dict:
        return self._request(session, "POST", f"/orders/{order_id}/cancel")

    # payment
    def create_payment_url(self, session: ClientSession, order_id: int, amount: Decimal) -> str:
        data = self._request(
            session,
            "POST",
            "/payment/create",
            json={"orderId": order_id, "amount": amount},
        )
        return data["paymentUrl"]

    @http_retry()
    def get_payment_by_order(self, session: ClientSession, order_id: int) -> dict:
        return self._request(session, "GET", f"/payment/order/{order_id}")
