# storefront/repos/cart_repo.py
from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_items(self, user_id: int) -> list[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.user_id == user_id)
                .order_by(CartItemModel.id)
            ).scalars().all()
        )

    def get_item(self, user_id: int, variant_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.user_id == user_id,
                CartItemModel.variant_id == variant_id,
            )
        ).scalar_one_or_none()

    def save_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, user_id: int, variant_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.user_id == user_id,
                CartItemModel.variant_id == variant_id,
            )
        )
        self.db.commit()
        return result.rowcount

    def clear(self, user_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(CartItemModel.user_id == user_id)
        )
        self.db.commit()
        return result.rowcount
