# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List
from decimal import Decimal
from datetime import datetime


class CamelModel(BaseModel):
    """Wire format is camelCase, python side stays snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------- cart


class CartItemIn(CamelModel):
    """Add/update a cart line."""

    variant_id: int = Field(..., gt=0, description="Product variant ID")
    quantity: int = Field(..., ge=1, description="Quantity, at least 1")


class CartItemRemoveIn(CamelModel):
    variant_id: int = Field(..., gt=0)


class VariantOut(CamelModel):
    id: int
    product_id: int
    sku: str
    color: str | None = None
    size: str | None = None
    price: Decimal
    stock: int


class CartItemOut(CamelModel):
    """Cart line with the live variant embedded."""

    id: int
    user_id: int
    variant_id: int
    quantity: int
    created_at: datetime
    updated_at: datetime
    variant: VariantOut


class CartClearOut(CamelModel):
    removed: int


# ---------------------------------------------------------------- orders


class OrderDetailIn(CamelModel):
    """One cart line as seen at checkout time. ``price`` is frozen into the order."""

    variant_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)


class OrderCreate(CamelModel):
    total_price: Decimal = Field(..., ge=0)
    details: List[OrderDetailIn]


class OrderOut(CamelModel):
    id: int
    user_id: int
    total_price: Decimal
    status: str
    created_at: datetime
    updated_at: datetime


class OrderDetailOut(CamelModel):
    id: int
    order_id: int
    variant_id: int
    quantity: int
    price: Decimal


class PaymentOut(CamelModel):
    id: int
    order_id: int
    user_id: int
    amount: Decimal
    payment_method: str
    status: str
    gateway_code: str | None = None
    transaction_no: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderWithDetailsOut(CamelModel):
    """Order, its lines and its latest payment read in one go."""

    order: OrderOut
    details: List[OrderDetailOut]
    payment: PaymentOut | None = None


class OrderStatusIn(CamelModel):
    status: str = Field(..., min_length=1)


# ---------------------------------------------------------------- payment


class PaymentCreate(CamelModel):
    order_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., ge=0)


class PaymentUrlOut(CamelModel):
    payment_url: str
