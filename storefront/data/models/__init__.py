#import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.variant import ProductVariantModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_detail import OrderDetailModel
from storefront.data.models.payment import PaymentModel

__all__ = [
    "ProductVariantModel",
    "CartItemModel",
    "OrderModel",
    "OrderDetailModel",
    "PaymentModel",
]
