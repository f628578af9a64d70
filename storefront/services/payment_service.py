# storefront/services/payment_service.py
import uuid
from decimal import Decimal
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from storefront.data.models.payment import PaymentModel
from storefront.domain.errors import NotFoundError, ConflictError
from storefront.domain.status import (
    OrderStatus,
    PaymentStatus,
    parse_order_status,
    parse_payment_status,
    can_transition_payment,
    Unrecognized,
)
from storefront.repos.order_repo import OrderRepo
from storefront.repos.payment_repo import PaymentRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import CENT, payment_to_dict
from storefront.services.vnpay_gateway import VNPayGateway, GatewayVerification, SUCCESS_CODE
from storefront.utils.settings import FRONTEND_URL, PAYMENT_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PAYMENT_METHOD = "Bank Transfer"

UNVERIFIED_MESSAGE = "Payment result could not be verified."
UNCONFIRMED_MESSAGE = "Payment could not be confirmed for this order."

# VNPay IPN acknowledgement contract
IPN_CONFIRMED = ("00", "Confirm Success")
IPN_ORDER_NOT_FOUND = ("01", "Order not found")
IPN_ALREADY_CONFIRMED = ("02", "Order already confirmed")
IPN_INVALID_AMOUNT = ("04", "Invalid amount")
IPN_INVALID_CHECKSUM = ("97", "Invalid Checksum")
IPN_UNKNOWN_ERROR = ("99", "Unknown error")


def ipn_response(result: tuple[str, str]) -> dict:
    code, message = result
    return {"RspCode": code, "Message": message}


class PaymentService:
    """
    Payment side of checkout.

    commands: create_payment_url, apply_gateway_result (return url + IPN)
    query: get_payment_by_order
    A Payment only moves pending -> completed | failed, never back.
    """

    def __init__(
        self,
        db: Session,
        gateway: VNPayGateway,
        lock_service: LockService,
        notification_service: NotificationService | None = None,
        frontend_url: str | None = None,
    ):
        self.orders = OrderRepo(db)
        self.repo = PaymentRepo(db)
        self.gateway = gateway
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()
        self.frontend_url = (frontend_url or FRONTEND_URL).rstrip("/")

    # query
    def get_payment_by_order(self, order_id: int, user_id: int) -> dict:
        order = self.orders.get_order(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} does not exist")

        if order.user_id != user_id:
            raise PermissionError("Access to this order is denied")

        payment = self.repo.get_payment_by_order(order_id)
        if not payment:
            raise NotFoundError(f"No payment for order {order_id}")
        return payment_to_dict(payment)

    # commands
    def create_payment_url(
        self,
        user_id: int,
        order_id: int,
        amount: Decimal,
        ip_addr: str = "127.0.0.1",
    ) -> dict:
        order = self.orders.get_order(order_id)

        if not order:
            raise NotFoundError(f"Order {order_id} does not exist")

        if order.user_id != user_id:
            raise PermissionError("Access to this order is denied")

        if parse_order_status(order.status) == OrderStatus.CANCELLED:
            raise ConflictError(f"Order {order_id} is cancelled")

        if Decimal(amount).quantize(CENT) != Decimal(order.total_price).quantize(CENT):
            raise ValueError(
                f"Payment amount {amount} does not match order total {order.total_price}"
            )

        owner = uuid.uuid4().hex
        locked = self.lock_service.acquire_payment_lock(
            order_id=order_id,
            owner=owner,
            ttl=PAYMENT_LOCK_TTL_SECONDS,
        )
        if not locked:
            raise ConflictError(f"A payment for order {order_id} is already being created")

        try:
            payment = self.repo.get_payment_by_order(order_id)
            status = parse_payment_status(payment.status) if payment else None

            if status == PaymentStatus.COMPLETED:
                raise ConflictError(f"Order {order_id} is already paid")

            if status == PaymentStatus.PENDING:
                logger.info(f"Reusing pending payment {payment.id} for order {order_id}")
            else:
                payment = self.repo.create_payment(
                    PaymentModel(
                        order_id=order.id,
                        user_id=order.user_id,
                        amount=order.total_price,
                        payment_method=DEFAULT_PAYMENT_METHOD,
                        status=PaymentStatus.PENDING.value,
                    )
                )
                logger.info(f"Payment {payment.id} created for order {order_id}, amount {payment.amount}")

            url = self.gateway.build_payment_url(
                order_id=order.id,
                amount=payment.amount,
                order_info=f"Payment for order #{order.id}",
                ip_addr=ip_addr,
                payment_id=payment.id,
            )
        finally:
            self.lock_service.release_payment_lock(order_id, owner)

        return {"payment_url": url}

    def _attempt(self, verification: GatewayVerification) -> PaymentModel | None:
        """The payment row the callback was issued for, never just the latest one."""
        if verification.payment_id is None:
            return None
        payment = self.repo.get_payment(verification.payment_id)
        if not payment or payment.order_id != verification.order_id:
            return None
        return payment

    def apply_gateway_result(self, verification: GatewayVerification) -> tuple[str, str]:
        """Record a verified gateway outcome. Returns the IPN (code, message) pair."""
        if not verification.is_verified:
            return IPN_INVALID_CHECKSUM

        if verification.order_id is None:
            return IPN_ORDER_NOT_FOUND

        payment = self._attempt(verification)
        if not payment:
            logger.warning(
                f"Gateway result for order {verification.order_id} "
                f"names no payment of it (attempt {verification.payment_id})"
            )
            return IPN_ORDER_NOT_FOUND

        if verification.amount is None or verification.amount.quantize(CENT) != Decimal(payment.amount).quantize(CENT):
            logger.warning(
                f"Gateway amount {verification.amount} != payment {payment.id} amount {payment.amount}"
            )
            return IPN_INVALID_AMOUNT

        target = PaymentStatus.COMPLETED if verification.is_success else PaymentStatus.FAILED
        current = parse_payment_status(payment.status)
        if isinstance(current, Unrecognized) or not can_transition_payment(current, target):
            logger.info(f"Payment {payment.id} already {payment.status}, ignoring gateway result")
            return IPN_ALREADY_CONFIRMED

        self.repo.update_payment_status(
            payment,
            target.value,
            gateway_code=verification.response_code,
            transaction_no=verification.transaction_no,
        )
        logger.info(
            f"Payment {payment.id} for order {payment.order_id} -> {target.value} "
            f"(code {verification.response_code})"
        )
        self.notification_service.send_payment_notification(payment.user_id, payment.order_id, target.value)
        return IPN_CONFIRMED

    def handle_ipn(self, params: dict) -> dict:
        verification = self.gateway.verify(params)
        return ipn_response(self.apply_gateway_result(verification))

    def handle_return(self, params: dict) -> str:
        """Apply the browser-return result and build the storefront redirect."""
        verification = self.gateway.verify(params)
        self.apply_gateway_result(verification)

        # the storefront pages only know the order
        order_ref = (
            str(verification.order_id) if verification.order_id is not None
            else params.get("vnp_TxnRef", "")
        )
        if verification.is_success:
            payment = self._attempt(verification)
            if payment and parse_payment_status(payment.status) == PaymentStatus.COMPLETED:
                return f"{self.frontend_url}/payment/success?" + urlencode(
                    {"vnp_TxnRef": order_ref, "vnp_ResponseCode": verification.response_code}
                )

        query = {"vnp_TxnRef": order_ref}
        code = params.get("vnp_ResponseCode")
        # a "00" that we could not confirm must not read as success downstream
        if code and code != SUCCESS_CODE:
            query["vnp_ResponseCode"] = code
        if not verification.is_verified:
            query["vnp_Message"] = UNVERIFIED_MESSAGE
        elif code == SUCCESS_CODE:
            query["vnp_Message"] = UNCONFIRMED_MESSAGE
        elif params.get("vnp_Message"):
            query["vnp_Message"] = params["vnp_Message"]
        return f"{self.frontend_url}/payment/failure?" + urlencode(query)
