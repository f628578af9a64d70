"""
Shared fixtures: in-memory sqlite, eager celery, a fake redis lock and a
requests transport that talks straight to the FastAPI app.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FRONTEND_URL"] = "http://shop.test"
os.environ["CHECKOUT_COMPENSATION"] = "keep"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from decimal import Decimal
from urllib.parse import urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from fastapi.testclient import TestClient

from storefront.celery_worker import celery_app
from storefront.client.session import ClientSession
from storefront.data.database import Base, engine, SessionLocal
from storefront.data.models import PaymentModel, ProductVariantModel
from storefront.main import create_app
from storefront.api.routers.payments import get_gateway, get_lock_service
from storefront.services.vnpay_gateway import VNPayGateway, txn_ref

celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = True

TEST_SECRET = "test-hash-secret"
BASE_URL = "http://testserver"


class FakeLockService:
    """In-process stand-in for the redis lock."""

    def __init__(self):
        self.held = {}
        self.acquired = []

    def acquire_payment_lock(self, order_id, owner, ttl):
        if order_id in self.held:
            return False
        self.held[order_id] = owner
        self.acquired.append(order_id)
        return True

    def release_payment_lock(self, order_id, owner):
        if self.held.get(order_id) == owner:
            del self.held[order_id]
            return True
        return False


class ASGITransportAdapter(BaseAdapter):
    """
    Routes a requests.Session into the FastAPI TestClient. ``failures`` maps
    (METHOD, path) to an HTTP status to answer with, or an exception to raise,
    without hitting the app.
    """

    _SKIP_HEADERS = {"content-length", "host", "connection"}

    def __init__(self, test_client: TestClient):
        super().__init__()
        self.test_client = test_client
        self.failures = {}
        self.calls = []

    def _fake_response(self, request, status):
        resp = requests.Response()
        resp.status_code = status
        resp._content = b'{"detail": "injected failure"}'
        resp.headers = CaseInsensitiveDict({"content-type": "application/json"})
        resp.url = request.url
        resp.request = request
        resp.encoding = "utf-8"
        return resp

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        parts = urlsplit(request.url)
        self.calls.append((request.method, parts.path))

        failure = self.failures.get((request.method, parts.path))
        if isinstance(failure, Exception):
            raise failure
        if isinstance(failure, int):
            return self._fake_response(request, failure)

        target = parts.path + (f"?{parts.query}" if parts.query else "")
        headers = {
            k: v for k, v in request.headers.items() if k.lower() not in self._SKIP_HEADERS
        }
        upstream = self.test_client.request(
            request.method,
            target,
            content=request.body,
            headers=headers,
            follow_redirects=False,
        )

        resp = requests.Response()
        resp.status_code = upstream.status_code
        resp._content = upstream.content
        resp.headers = CaseInsensitiveDict(upstream.headers)
        resp.url = request.url
        resp.request = request
        resp.reason = upstream.reason_phrase
        resp.encoding = "utf-8"
        return resp

    def close(self):
        pass


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def variants(db):
    rows = [
        ProductVariantModel(id=1, product_id=1, sku="V1", color="red", size="M", price=Decimal("100000"), stock=10),
        ProductVariantModel(id=2, product_id=1, sku="V2", color="red", size="L", price=Decimal("250000"), stock=2),
        ProductVariantModel(id=3, product_id=2, sku="V3", color="blue", size="32", price=Decimal("49500.50"), stock=5),
    ]
    db.add_all(rows)
    db.commit()
    return {v.id: v for v in rows}


@pytest.fixture
def gateway():
    return VNPayGateway(
        tmn_code="TESTTMN",
        hash_secret=TEST_SECRET,
        payment_url="https://pay.test/vpcpay.html",
        return_url="http://testserver/payment/vnpay_return",
    )


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def app(gateway, lock_service):
    application = create_app()
    application.dependency_overrides[get_gateway] = lambda: gateway
    application.dependency_overrides[get_lock_service] = lambda: lock_service
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def transport(client):
    return ASGITransportAdapter(client)


@pytest.fixture
def make_session(transport):
    def _make(user_id=1, token="token-1"):
        http = requests.Session()
        http.mount(BASE_URL, transport)
        return ClientSession(BASE_URL, user_id=user_id, token=token, http=http)

    return _make


@pytest.fixture
def session(make_session):
    return make_session()


def signed_callback(gateway, order_id, amount, code="00", payment_id=None, **extra):
    """Gateway return/IPN parameters, signed the way VNPay signs them."""
    params = {
        "vnp_TmnCode": gateway.tmn_code,
        "vnp_TxnRef": txn_ref(order_id, payment_id),
        "vnp_Amount": str(int(Decimal(amount) * 100)),
        "vnp_ResponseCode": code,
        "vnp_TransactionStatus": code,
        "vnp_TransactionNo": "14000001",
        "vnp_BankCode": "NCB",
        "vnp_PayDate": "20261019120000",
        "vnp_OrderInfo": f"Payment for order #{order_id}",
    }
    params.update(extra)
    params["vnp_SecureHash"] = gateway.sign(params)
    return params


@pytest.fixture
def callback(gateway, db):
    """Signs for the latest payment attempt of the order unless ``payment_id`` is given."""

    def _callback(order_id, amount, code="00", payment_id=None, **extra):
        if payment_id is None:
            latest = (
                db.query(PaymentModel.id)
                .filter_by(order_id=order_id)
                .order_by(PaymentModel.id.desc())
                .first()
            )
            payment_id = latest[0] if latest else None
        return signed_callback(gateway, order_id, amount, code, payment_id, **extra)

    return _callback
