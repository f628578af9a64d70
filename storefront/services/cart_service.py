from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import NotFoundError
from storefront.repos.cart_repo import CartRepo
from storefront.repos.variant_repo import VariantRepo
from storefront.utils.logging import get_logger
from sqlalchemy.orm import Session

logger = get_logger(__name__)


class CartService:
    """
    Cart store for one user: the lines waiting to be checked out.
    Stock is not reserved here; the order boundary checks it at checkout.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.variants = VariantRepo(db)

    # query
    def get_cart(self, user_id: int) -> list[CartItemModel]:
        return self.repo.get_items(user_id)

    # commands
    def add_item(self, user_id: int, variant_id: int, quantity: int) -> list[CartItemModel]:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        if not self.variants.get_variant(variant_id):
            raise NotFoundError(f"Variant {variant_id} does not exist")

        existing = self.repo.get_item(user_id, variant_id)
        if existing:
            logger.info(
                f"Variant {variant_id} already in cart of user {user_id}, "
                f"quantity {existing.quantity} -> {existing.quantity + quantity}"
            )
            existing.quantity += quantity
            self.repo.save_item(existing)
        else:
            logger.info(f"Adding variant {variant_id} x{quantity} to cart of user {user_id}")
            self.repo.save_item(
                CartItemModel(user_id=user_id, variant_id=variant_id, quantity=quantity)
            )

        return self.get_cart(user_id)

    def update_item(self, user_id: int, variant_id: int, quantity: int) -> list[CartItemModel]:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        item = self.repo.get_item(user_id, variant_id)
        if not item:
            raise NotFoundError(f"Variant {variant_id} is not in the cart")

        item.quantity = quantity
        self.repo.save_item(item)
        logger.info(f"Cart of user {user_id}: variant {variant_id} set to {quantity}")
        return self.get_cart(user_id)

    def remove_item(self, user_id: int, variant_id: int) -> list[CartItemModel]:
        removed = self.repo.delete_item(user_id, variant_id)
        if not removed:
            raise NotFoundError(f"Variant {variant_id} is not in the cart")

        logger.info(f"Removed variant {variant_id} from cart of user {user_id}")
        return self.get_cart(user_id)

    def clear_cart(self, user_id: int) -> int:
        removed = self.repo.clear(user_id)
        logger.info(f"Cleared cart of user {user_id} ({removed} items)")
        return removed
