# storefront/services/vnpay_gateway.py
"""
VNPay redirect gateway.

The buyer is sent to VNPay with a signed query string and comes back on
``vnp_ReturnUrl`` (browser) and on the IPN url (server to server) with the
result. Both callbacks carry ``vnp_SecureHash``, an HMAC-SHA512 over every
other ``vnp_*`` parameter, sorted by key and url-encoded with ``quote_plus``.
Nothing in a callback is trusted before :meth:`VNPayGateway.verify` passes.
"""
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from urllib.parse import urlencode, quote_plus

from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

SUCCESS_CODE = "00"
VNP_VERSION = "2.1.0"
VNP_DATE_FORMAT = "%Y%m%d%H%M%S"
# VNPay timestamps are Vietnam local time
VNP_TZ = timezone(timedelta(hours=7))

_UNSIGNED = {"vnp_SecureHash", "vnp_SecureHashType"}


@dataclass(frozen=True)
class GatewayVerification:
    is_verified: bool
    is_success: bool
    order_id: int | None
    amount: Decimal | None
    response_code: str | None
    transaction_no: str | None = None
    message: str | None = None
    payment_id: int | None = None


def txn_ref(order_id: int, payment_id: int | None = None) -> str:
    """Gateway reference for one payment attempt: ``<order>-<payment>``."""
    return str(order_id) if payment_id is None else f"{order_id}-{payment_id}"


def parse_txn_ref(ref) -> tuple[int | None, int | None]:
    """``"12-5"`` -> ``(12, 5)``; a bare ``"12"`` names no attempt and gives ``(12, None)``."""
    order_part, _, payment_part = str(ref or "").partition("-")
    try:
        order_id = int(order_part)
    except ValueError:
        return None, None
    if not payment_part:
        return order_id, None
    try:
        return order_id, int(payment_part)
    except ValueError:
        return None, None


def _hmac_sha512(secret: str, data: str) -> str:
    return hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha512).hexdigest()


def _sign_data(params: dict) -> str:
    signed = sorted(
        (k, str(v)) for k, v in params.items()
        if k.startswith("vnp_") and k not in _UNSIGNED and v is not None and str(v) != ""
    )
    return urlencode(signed, quote_via=quote_plus)


class VNPayGateway:
    def __init__(
        self,
        tmn_code: str | None = None,
        hash_secret: str | None = None,
        payment_url: str | None = None,
        return_url: str | None = None,
        locale: str | None = None,
        expire_minutes: int | None = None,
    ):
        self.tmn_code = tmn_code or settings.VNP_TMN_CODE
        self.hash_secret = hash_secret or settings.VNP_HASH_SECRET
        self.payment_url = payment_url or settings.VNP_URL
        self.return_url = return_url or settings.VNP_RETURN_URL
        self.locale = locale or settings.VNP_LOCALE
        self.expire_minutes = expire_minutes or settings.VNP_EXPIRE_MINUTES

    def build_payment_url(
        self,
        order_id: int,
        amount: Decimal,
        order_info: str,
        ip_addr: str = "127.0.0.1",
        now: datetime | None = None,
        payment_id: int | None = None,
    ) -> str:
        now = (now or datetime.now(timezone.utc)).astimezone(VNP_TZ)
        expire = now + timedelta(minutes=self.expire_minutes)

        params = {
            "vnp_Version": VNP_VERSION,
            "vnp_Command": "pay",
            "vnp_TmnCode": self.tmn_code,
            # minor units, VND has none so the gateway expects x100
            "vnp_Amount": int(Decimal(amount) * 100),
            "vnp_CurrCode": "VND",
            "vnp_TxnRef": txn_ref(order_id, payment_id),
            "vnp_OrderInfo": order_info,
            "vnp_OrderType": "other",
            "vnp_Locale": self.locale,
            "vnp_ReturnUrl": self.return_url,
            "vnp_IpAddr": ip_addr,
            "vnp_CreateDate": now.strftime(VNP_DATE_FORMAT),
            "vnp_ExpireDate": expire.strftime(VNP_DATE_FORMAT),
        }

        query = _sign_data(params)
        secure_hash = _hmac_sha512(self.hash_secret, query)
        logger.info(f"VNPay url built for order {order_id}, amount {amount}")
        return f"{self.payment_url}?{query}&vnp_SecureHash={secure_hash}"

    def sign(self, params: dict) -> str:
        return _hmac_sha512(self.hash_secret, _sign_data(params))

    def verify(self, params: dict) -> GatewayVerification:
        params = dict(params)
        received = str(params.get("vnp_SecureHash") or "")
        expected = self.sign(params)
        is_verified = bool(received) and hmac.compare_digest(received.lower(), expected)

        response_code = params.get("vnp_ResponseCode")
        transaction_status = params.get("vnp_TransactionStatus")

        order_id, payment_id = parse_txn_ref(params.get("vnp_TxnRef"))

        try:
            amount = Decimal(str(params.get("vnp_Amount"))) / 100
        except (InvalidOperation, ValueError):
            amount = None

        is_success = (
            is_verified
            and response_code == SUCCESS_CODE
            and transaction_status in (None, "", SUCCESS_CODE)
        )

        if not is_verified:
            logger.warning(f"VNPay callback with invalid signature for TxnRef {params.get('vnp_TxnRef')}")

        return GatewayVerification(
            is_verified=is_verified,
            is_success=is_success,
            order_id=order_id,
            payment_id=payment_id,
            amount=amount,
            response_code=response_code,
            transaction_no=params.get("vnp_TransactionNo"),
            message=params.get("vnp_Message"),
        )
