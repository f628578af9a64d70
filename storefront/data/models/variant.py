from sqlalchemy import Column, Integer, String, Numeric

from storefront.data.database import Base


class ProductVariantModel(Base):
    """Owned by the catalog; the checkout core only reads price and stock."""

    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, nullable=False, index=True)
    sku = Column(String(64), nullable=False, unique=True)
    color = Column(String(32), nullable=True)
    size = Column(String(16), nullable=True)

    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
