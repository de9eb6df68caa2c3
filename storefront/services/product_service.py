# storefront/services/product_service.py
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.database import unit_of_work
from storefront.data.models.product import ProductModel
from storefront.domain.enums import ProductStatus
from storefront.domain.errors import NotFound, ValidationFailed
from storefront.domain.filters import ProductFilters
from storefront.domain.schemas import LineItemIn, ProductCreate, ProductStatusBulkUpdate, ProductUpdate
from storefront.repos.category_repo import CategoryRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.inventory import InventoryValidator
from storefront.utils.db_errors import db_errors
from storefront.utils.logging import get_logger
from storefront.utils.settings import LOW_STOCK_THRESHOLD
from storefront.utils.slug import slugify, unique_slug


class ProductService:
    """Catalogue maintenance and the public availability check."""

    def __init__(self, db: Session, log=None):
        self.db = db
        self.repo = ProductRepo(db)
        self.categories = CategoryRepo(db)
        self.inventory = InventoryValidator(db)
        self.log = log or get_logger(__name__)

    @staticmethod
    def _to_dict(product: ProductModel) -> Dict[str, Any]:
        return {
            "id": product.id,
            "name": product.name,
            "slug": product.slug,
            "description": product.description,
            "price": product.price,
            "status": product.status,
            "inventory_quantity": product.inventory_quantity,
            "allow_backorder": product.allow_backorder,
            "category_id": product.category_id,
        }

    def _check_category(self, category_id: int) -> None:
        if not self.categories.get_category(category_id):
            raise NotFound("Category")

    def _check_stock(self, quantity: int, allow_backorder: bool) -> None:
        if quantity < 0 and not allow_backorder:
            raise ValidationFailed.for_field(
                "inventory_quantity", "Inventory cannot be negative unless backorders are allowed"
            )

    def _slug_for(self, name: str, exclude_id: int | None = None) -> str:
        try:
            base = slugify(name)
        except ValueError:
            base = ""
        if not base:
            raise ValidationFailed.for_field("name", "Product name must contain letters or digits")
        return unique_slug(base, lambda s: self.repo.slug_exists(s, exclude_id))

    @db_errors("create", "product")
    def create_product(self, payload: ProductCreate) -> Dict[str, Any]:
        with unit_of_work(self.db):
            self._check_category(payload.category_id)
            self._check_stock(payload.inventory_quantity, payload.allow_backorder)

            product = self.repo.add(
                ProductModel(
                    name=payload.name,
                    slug=self._slug_for(payload.name),
                    description=payload.description,
                    price=payload.price,
                    status=payload.status.value,
                    inventory_quantity=payload.inventory_quantity,
                    allow_backorder=payload.allow_backorder,
                    category_id=payload.category_id,
                )
            )

        self.log.info(f"Product {product.id} '{product.name}' created")
        return self._to_dict(product)

    @db_errors("update", "product")
    def update_product(self, product_id: int, payload: ProductUpdate) -> Dict[str, Any]:
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        with unit_of_work(self.db):
            product = self.repo.get_product(product_id)
            if not product:
                raise NotFound("Product")

            if "category_id" in changes:
                self._check_category(changes["category_id"])
            if "name" in changes and changes["name"] != product.name:
                product.slug = self._slug_for(changes["name"], product.id)
            if "status" in changes:
                changes["status"] = changes["status"].value

            self._check_stock(
                changes.get("inventory_quantity", product.inventory_quantity),
                changes.get("allow_backorder", product.allow_backorder),
            )

            for field, value in changes.items():
                setattr(product, field, value)
            product.updated_at = datetime.now(timezone.utc)
            self.db.flush()

        self.log.info(f"Product {product.id} updated: {sorted(changes)}")
        return self._to_dict(product)

    @db_errors("read", "product")
    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product")
        return self._to_dict(product)

    @db_errors("delete", "product")
    def delete_product(self, product_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            product = self.repo.get_product(product_id)
            if not product:
                raise NotFound("Product")

            # order items keep pointing at it, so it is only retired
            product.status = ProductStatus.DISCONTINUED.value
            product.updated_at = datetime.now(timezone.utc)
            self.db.flush()

        self.log.info(f"Product {product.id} '{product.name}' discontinued")
        return self._to_dict(product)

    @db_errors("read", "product")
    def get_by_slug(self, slug: str, include_inactive: bool = False) -> Dict[str, Any]:
        product = self.repo.get_by_slug(slug)
        if not product or (not include_inactive and product.status != ProductStatus.ACTIVE.value):
            raise NotFound("Product")
        return self._to_dict(product)

    @db_errors("read", "product")
    def list_products(self, filters: ProductFilters) -> List[Dict[str, Any]]:
        rows = self.repo.list_products(
            category_id=filters.category_id,
            status=filters.status.value if filters.status else None,
            q=filters.q,
            limit=filters.limit,
            offset=filters.offset,
        )
        return [self._to_dict(p) for p in rows]

    @db_errors("read", "product")
    def check_availability(self, items: List[LineItemIn]) -> Dict[str, Any]:
        return self.inventory.report([(i.product_id, i.quantity) for i in items]).to_dict()

    @db_errors("read", "product")
    def list_low_stock(self, threshold: int | None = None) -> List[Dict[str, Any]]:
        """Active products at or below `threshold` units, emptiest first."""
        limit = LOW_STOCK_THRESHOLD if threshold is None else threshold
        return [self._to_dict(p) for p in self.repo.list_low_stock(limit)]

    @db_errors("update", "product")
    def bulk_update_status(self, payload: ProductStatusBulkUpdate) -> Dict[str, Any]:
        ids = sorted(set(payload.product_ids))

        with unit_of_work(self.db):
            updated = self.repo.set_status(ids, payload.status.value)

        self.log.info(f"Set status {payload.status.value} on {updated} of {len(ids)} products")
        return {"updated": updated}
