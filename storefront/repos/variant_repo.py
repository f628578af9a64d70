# storefront/repos/variant_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.variant import ProductVariantModel


class VariantRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_variant(self, variant_id: int) -> ProductVariantModel | None:
        return self.db.get(ProductVariantModel, variant_id)

    def get_variants(self, variant_ids) -> dict[int, ProductVariantModel]:
        ids = set(variant_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductVariantModel).where(ProductVariantModel.id.in_(ids))
        ).scalars().all()
        return {v.id: v for v in rows}
