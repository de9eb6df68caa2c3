# storefront/repos/product_repo.py
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.enums import ProductStatus


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_by_slug(self, slug: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(ProductModel.slug == slug)
        ).scalar_one_or_none()

    def slug_exists(self, slug: str, exclude_id: int | None = None) -> bool:
        stmt = select(ProductModel.id).where(ProductModel.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(ProductModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def get_products(self, product_ids: Iterable[int], for_update: bool = False) -> Dict[int, ProductModel]:
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        stmt = select(ProductModel).where(ProductModel.id.in_(ids))
        if for_update:
            # ordered ids keep lock acquisition order stable between transactions
            stmt = stmt.order_by(ProductModel.id).with_for_update()
        return {p.id: p for p in self.db.execute(stmt).scalars()}

    def list_products(
        self,
        category_id: int | None = None,
        status: str | None = None,
        q: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ProductModel]:
        stmt = select(ProductModel)
        if q:
            stmt = stmt.where(ProductModel.name.ilike(f"%{q.lower()}%"))
        if category_id is not None:
            stmt = stmt.where(ProductModel.category_id == category_id)
        if status is not None:
            stmt = stmt.where(ProductModel.status == status)
        stmt = stmt.order_by(ProductModel.name).offset(offset).limit(limit)
        return list(self.db.execute(stmt).scalars())

    def list_low_stock(self, threshold: int) -> List[ProductModel]:
        stmt = (
            select(ProductModel)
            .where(
                ProductModel.status == ProductStatus.ACTIVE.value,
                ProductModel.inventory_quantity <= threshold,
            )
            .order_by(ProductModel.inventory_quantity, ProductModel.id)
        )
        return list(self.db.execute(stmt).scalars())

    def set_status(self, product_ids: Iterable[int], status: str) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id.in_(list(product_ids)))
            .values(status=status, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def add(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        """Take `quantity` off the shelf only if it is there (or backorder is allowed).

        Returns the number of rows changed, 0 means the guard rejected it.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.status == ProductStatus.ACTIVE.value,
                or_(
                    ProductModel.allow_backorder.is_(True),
                    ProductModel.inventory_quantity >= quantity,
                ),
            )
            .values(
                inventory_quantity=ProductModel.inventory_quantity - quantity,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def increment_stock(self, product_id: int, quantity: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(
                inventory_quantity=ProductModel.inventory_quantity + quantity,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
