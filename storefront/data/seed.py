# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal
from storefront.data.models.variant import ProductVariantModel

# dev catalog, the real one lives in the product service
VARIANTS = [
    {"id": 1, "product_id": 1, "sku": "TSHIRT-RED-M", "color": "red", "size": "M", "price": Decimal("100000"), "stock": 20},
    {"id": 2, "product_id": 1, "sku": "TSHIRT-RED-L", "color": "red", "size": "L", "price": Decimal("110000"), "stock": 5},
    {"id": 3, "product_id": 2, "sku": "JEANS-BLUE-32", "color": "blue", "size": "32", "price": Decimal("450000"), "stock": 3},
]


def seed():
    db = SessionLocal()
    try:
        # only seed if empty
        if db.query(ProductVariantModel).first():
            return
        db.add_all(ProductVariantModel(**v) for v in VARIANTS)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    from storefront.main import init_db

    init_db()
    seed()
