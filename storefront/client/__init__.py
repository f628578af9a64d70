# storefront/client/__init__.py
from storefront.client.session import ClientSession, SessionClosedError, AuthenticationExpired
from storefront.client.api_client import StorefrontClient
from storefront.client.checkout import (
    CartLine,
    CheckoutOrchestrator,
    CheckoutResult,
    CheckoutStatus,
    snapshot_from_cart,
)
from storefront.client.payment_return import ReturnOutcome, interpret_return
from storefront.client.reconcile import OrderView, StatusReconciler

__all__ = [
    "ClientSession",
    "SessionClosedError",
    "AuthenticationExpired",
    "StorefrontClient",
    "CartLine",
    "CheckoutOrchestrator",
    "CheckoutResult",
    "CheckoutStatus",
    "snapshot_from_cart",
    "ReturnOutcome",
    "interpret_return",
    "OrderView",
    "StatusReconciler",
]
