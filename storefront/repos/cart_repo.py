# storefront/repos/cart_repo.py
from datetime import datetime, timezone
from typing import List

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, joinedload

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_items(self, cart_id: int) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .options(joinedload(CartItemModel.product))
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.added_at.desc(), CartItemModel.id.desc())
            ).scalars().unique()
        )

    def get_cart_item(self, cart_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_cart_item_by_id(self, cart_id: int, item_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def increment_item_quantity(self, item_id: int, quantity: int, variant: dict | None) -> int:
        # single statement, two concurrent adds both land
        values = {
            "quantity": CartItemModel.quantity + quantity,
            "updated_at": datetime.now(timezone.utc),
        }
        if variant is not None:
            values["product_variant"] = variant
        result = self.db.execute(
            update(CartItemModel)
            .where(CartItemModel.id == item_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def set_item_quantity(self, item: CartItemModel, quantity: int) -> CartItemModel:
        item.quantity = quantity
        item.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_all_items(self, cart_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def touch(self, cart_id: int) -> None:
        self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
