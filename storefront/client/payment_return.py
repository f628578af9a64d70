# storefront/client/payment_return.py
from dataclasses import dataclass

SUCCESS_CODE = "00"

SUCCESS_MESSAGE = "Your payment was successful."
GENERIC_FAILURE_MESSAGE = "An error occurred while processing your payment."

FAILURE_MESSAGES = {
    "24": "Customer cancelled the transaction.",
    "51": "Insufficient balance in your account.",
}


@dataclass(frozen=True)
class ReturnOutcome:
    order_id: int | None
    succeeded: bool
    reason_code: str | None
    message: str


def failure_message(code: str | None, gateway_message: str | None = None) -> str:
    if code in FAILURE_MESSAGES:
        return FAILURE_MESSAGES[code]
    if gateway_message:
        return gateway_message
    return GENERIC_FAILURE_MESSAGE


def interpret_return(query_params) -> ReturnOutcome:
    """
    Read the gateway return parameters the storefront page received.

    Display only: the server already verified the signature and recorded
    the payment status before redirecting here.
    """
    ref = query_params.get("vnp_TxnRef")
    try:
        order_id = int(ref) if ref not in (None, "") else None
    except ValueError:
        order_id = None

    code = query_params.get("vnp_ResponseCode") or None
    if code == SUCCESS_CODE:
        return ReturnOutcome(order_id, True, code, SUCCESS_MESSAGE)

    return ReturnOutcome(
        order_id=order_id,
        succeeded=False,
        reason_code=code,
        message=failure_message(code, query_params.get("vnp_Message")),
    )
