# storefront/api/__init__.py
from storefront.api.routers import health, carts, orders, payments

ROUTERS = [
    health.router,
    carts.router,
    orders.router,
    payments.router,
]
