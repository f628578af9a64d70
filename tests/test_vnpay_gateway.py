from datetime import datetime, timezone
from decimal import Decimal
from urllib.parse import urlsplit, parse_qsl

from storefront.services.vnpay_gateway import VNPayGateway, parse_txn_ref, txn_ref


def _query(url):
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))


def test_payment_url_carries_order_and_amount(gateway):
    now = datetime(2026, 10, 19, 5, 0, 0, tzinfo=timezone.utc)
    url = gateway.build_payment_url(42, Decimal("200000.00"), "Payment for order #42", now=now)

    assert url.startswith("https://pay.test/vpcpay.html?")
    params = _query(url)
    assert params["vnp_TxnRef"] == "42"
    assert params["vnp_Amount"] == "20000000"
    assert params["vnp_TmnCode"] == "TESTTMN"
    assert params["vnp_Command"] == "pay"
    assert params["vnp_CurrCode"] == "VND"
    # gateway clock is UTC+7
    assert params["vnp_CreateDate"] == "20261019120000"
    assert params["vnp_ExpireDate"] == "20261020120000"
    assert len(params["vnp_SecureHash"]) == 128


def test_own_url_verifies(gateway):
    url = gateway.build_payment_url(5, Decimal("99000"), "Payment for order #5")
    result = gateway.verify(_query(url))
    assert result.is_verified
    assert result.order_id == 5
    assert result.amount == Decimal("99000")


def test_signed_success_callback(callback, gateway):
    result = gateway.verify(callback(9, "150000"))
    assert result.is_verified
    assert result.is_success
    assert result.response_code == "00"
    assert result.transaction_no == "14000001"


def test_failure_code_is_verified_but_not_success(callback, gateway):
    result = gateway.verify(callback(9, "150000", code="24"))
    assert result.is_verified
    assert not result.is_success


def test_tampered_amount_fails_verification(callback, gateway):
    params = callback(9, "150000")
    params["vnp_Amount"] = "100"
    result = gateway.verify(params)
    assert not result.is_verified
    assert not result.is_success


def test_tampered_response_code_fails_verification(callback, gateway):
    params = callback(9, "150000", code="51")
    params["vnp_ResponseCode"] = "00"
    params["vnp_TransactionStatus"] = "00"
    assert not gateway.verify(params).is_verified


def test_missing_hash_is_rejected(callback, gateway):
    params = callback(9, "150000")
    del params["vnp_SecureHash"]
    assert not gateway.verify(params).is_verified


def test_other_secret_does_not_verify(callback):
    other = VNPayGateway(tmn_code="TESTTMN", hash_secret="someone-else")
    assert not other.verify(callback(9, "150000")).is_verified


def test_uppercase_hash_accepted(callback, gateway):
    params = callback(9, "150000")
    params["vnp_SecureHash"] = params["vnp_SecureHash"].upper()
    assert gateway.verify(params).is_verified


def test_attempt_reference_round_trips_through_verify(gateway):
    url = gateway.build_payment_url(42, Decimal("1000"), "Payment for order #42", payment_id=7)
    params = _query(url)
    assert params["vnp_TxnRef"] == "42-7"

    result = gateway.verify(params)
    assert result.is_verified
    assert (result.order_id, result.payment_id) == (42, 7)


def test_parse_txn_ref():
    assert parse_txn_ref(txn_ref(12, 5)) == (12, 5)
    assert parse_txn_ref("12") == (12, None)
    assert parse_txn_ref("12-x") == (None, None)
    assert parse_txn_ref("abc") == (None, None)
    assert parse_txn_ref(None) == (None, None)
