# storefront/services/cart_service.py
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.database import unit_of_work
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.enums import ProductStatus
from storefront.domain.errors import NotFound, ValidationFailed
from storefront.repos.cart_repo import CartRepo
from storefront.services.inventory import InventoryValidator
from storefront.services.pricing import PricingConfig, calculate_subtotal, estimate_tax, money
from storefront.utils.db_errors import db_errors, is_unique_violation
from storefront.utils.logging import get_logger
from storefront.utils.settings import MAX_CART_ITEM_QUANTITY


class CartService:
    """
    Per-user shopping cart.
    Commands (add, update, remove, clear) re-check availability before writing,
    queries drop items whose product is gone or no longer active.
    """

    def __init__(self, db: Session, pricing: PricingConfig | None = None, log=None):
        self.db = db
        self.repo = CartRepo(db)
        self.inventory = InventoryValidator(db)
        self.pricing = pricing or PricingConfig()
        self.log = log or get_logger(__name__)

    # query

    @staticmethod
    def _visible(item: CartItemModel) -> bool:
        return item.product is not None and item.product.status == ProductStatus.ACTIVE.value

    @staticmethod
    def _item_to_dict(item: CartItemModel) -> Dict[str, Any]:
        p = item.product
        return {
            "id": item.id,
            "product_id": item.product_id,
            "quantity": item.quantity,
            "product_variant": item.product_variant,
            "added_at": item.added_at,
            "updated_at": item.updated_at,
            "product": {
                "id": p.id,
                "name": p.name,
                "slug": p.slug,
                "price": money(p.price),
                "status": p.status,
                "inventory_quantity": p.inventory_quantity,
                "allow_backorder": p.allow_backorder,
            },
        }

    def summarize(self, items: List[CartItemModel]) -> Dict[str, Any]:
        subtotal = calculate_subtotal((i.product.price, i.quantity) for i in items)
        tax = estimate_tax(subtotal, self.pricing)
        return {
            "total_items": len(items),
            "total_quantity": sum(i.quantity for i in items),
            "subtotal": subtotal,
            "estimated_tax": tax,
            "estimated_total": money(subtotal + tax),
        }

    def _visible_items(self, cart_id: int) -> List[CartItemModel]:
        return [i for i in self.repo.get_cart_items(cart_id) if self._visible(i)]

    @db_errors("read", "cart")
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart_id = self.get_or_create(user_id)
        cart = self.db.get(CartModel, cart_id)
        items = self._visible_items(cart_id)

        return {
            "id": cart.id,
            "user_id": cart.user_id,
            "items": [self._item_to_dict(i) for i in items],
            "summary": self.summarize(items),
            "created_at": cart.created_at,
            "updated_at": cart.updated_at,
        }

    @db_errors("read", "cart")
    def get_summary(self, user_id: int) -> Dict[str, Any]:
        cart_id = self.get_or_create(user_id)
        return self.summarize(self._visible_items(cart_id))

    # commands

    def _ensure_cart(self, user_id: int) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart:
            return cart

        try:
            with self.db.begin_nested():
                cart = self.repo.create_cart(CartModel(user_id=user_id))
        except IntegrityError as e:
            # a parallel request created it first
            if not is_unique_violation(e, "user_id"):
                raise
            cart = self.repo.get_cart_by_user(user_id)
        else:
            self.log.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    @db_errors("create", "cart")
    def get_or_create(self, user_id: int) -> int:
        with unit_of_work(self.db):
            return self._ensure_cart(user_id).id

    @staticmethod
    def _check_quantity_limit(quantity: int) -> None:
        if quantity < 1 or quantity > MAX_CART_ITEM_QUANTITY:
            raise ValidationFailed.for_field(
                "quantity", f"Quantity must be between 1 and {MAX_CART_ITEM_QUANTITY}"
            )

    @db_errors("update", "cart")
    def add_item(self, user_id: int, product_id: int, quantity: int,
                 variant: Dict[str, Any] | None = None) -> Dict[str, Any]:
        self.log.info(f"Adding product {product_id} x{quantity} to cart of user {user_id}")
        self._check_quantity_limit(quantity)

        with unit_of_work(self.db):
            cart = self._ensure_cart(user_id)
            existing = self.repo.get_cart_item(cart.id, product_id)

            combined = quantity + (existing.quantity if existing else 0)
            self._check_quantity_limit(combined)
            self.inventory.ensure_available([(product_id, combined)])

            if existing:
                self.repo.increment_item_quantity(existing.id, quantity, variant)
            else:
                self._insert_item(cart.id, product_id, quantity, variant)

            self.repo.touch(cart.id)

        return self.get_cart(user_id)

    def _insert_item(self, cart_id: int, product_id: int, quantity: int, variant) -> None:
        try:
            with self.db.begin_nested():
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart_id,
                        product_id=product_id,
                        quantity=quantity,
                        product_variant=variant,
                    )
                )
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            # another request inserted the same product meanwhile, merge into its row
            row = self.repo.get_cart_item(cart_id, product_id)
            self.inventory.ensure_available([(product_id, row.quantity + quantity)])
            self.repo.increment_item_quantity(row.id, quantity, variant)

    @db_errors("update", "cart")
    def update_item(self, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        self.log.info(f"Updating cart item {item_id} of user {user_id} to quantity {quantity}")
        self._check_quantity_limit(quantity)

        with unit_of_work(self.db):
            cart = self._ensure_cart(user_id)
            item = self.repo.get_cart_item_by_id(cart.id, item_id)
            if not item:
                raise NotFound("Cart item")

            # absolute quantity, nothing is reserved by the cart itself
            self.inventory.ensure_available([(item.product_id, quantity)])
            self.repo.set_item_quantity(item, quantity)
            self.repo.touch(cart.id)

        return self.get_cart(user_id)

    @db_errors("delete", "cart")
    def remove_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        self.log.info(f"Removing cart item {item_id} of user {user_id}")

        with unit_of_work(self.db):
            cart = self._ensure_cart(user_id)
            item = self.repo.get_cart_item_by_id(cart.id, item_id)
            if not item:
                raise NotFound("Cart item")

            self.repo.delete_cart_item(item)
            self.repo.touch(cart.id)

        return self.get_cart(user_id)

    def clear_items(self, user_id: int) -> int:
        """Empty the cart inside the caller's transaction."""
        cart = self._ensure_cart(user_id)
        removed = self.repo.delete_all_items(cart.id)
        self.repo.touch(cart.id)
        return removed

    @db_errors("delete", "cart")
    def clear(self, user_id: int) -> Dict[str, Any]:
        self.log.info(f"Clearing cart of user {user_id}")
        with unit_of_work(self.db):
            self.clear_items(user_id)
        return self.get_cart(user_id)

    def checkout_lines(self, user_id: int) -> List[CartItemModel]:
        """Items that would be ordered right now, i.e. the visible ones."""
        cart = self._ensure_cart(user_id)
        return self._visible_items(cart.id)
