# storefront/services/inventory.py
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.enums import ProductStatus
from storefront.domain.errors import FieldError, InsufficientStock, NotFound, ValidationFailed
from storefront.repos.product_repo import ProductRepo

NOT_FOUND = "not_found"
INACTIVE = "inactive"
INSUFFICIENT_STOCK = "insufficient_stock"


@dataclass(frozen=True)
class ItemAvailability:
    product_id: int
    product_name: str | None
    requested_quantity: int
    available_quantity: int
    allow_backorder: bool
    reason: str | None = None

    @property
    def available(self) -> bool:
        return self.reason is None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "requested_quantity": self.requested_quantity,
            "available_quantity": self.available_quantity,
            "allow_backorder": self.allow_backorder,
            "available": self.available,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AvailabilityReport:
    items: List[ItemAvailability]

    @property
    def is_valid(self) -> bool:
        return all(item.available for item in self.items)

    @property
    def unavailable(self) -> List[ItemAvailability]:
        return [item for item in self.items if not item.available]

    def to_dict(self) -> dict:
        return {"is_valid": self.is_valid, "items": [i.to_dict() for i in self.items]}


def check_item(product_id: int, quantity: int, product: ProductModel | None) -> ItemAvailability:
    if product is None:
        return ItemAvailability(product_id, None, quantity, 0, False, NOT_FOUND)

    if product.status != ProductStatus.ACTIVE.value:
        return ItemAvailability(product_id, product.name, quantity, 0, False, INACTIVE)

    available = product.inventory_quantity or 0
    if quantity > available and not product.allow_backorder:
        return ItemAvailability(
            product_id, product.name, quantity, available, False, INSUFFICIENT_STOCK
        )

    return ItemAvailability(product_id, product.name, quantity, available, bool(product.allow_backorder))


def check_availability(
    requests: Sequence[Tuple[int, int]],
    products: Mapping[int, ProductModel],
) -> AvailabilityReport:
    """Pure check of (product_id, quantity) pairs against a snapshot of product rows."""
    return AvailabilityReport([check_item(pid, qty, products.get(pid)) for pid, qty in requests])


def raise_for(item: ItemAvailability) -> None:
    if item.reason == NOT_FOUND:
        raise NotFound(f"Product {item.product_id}")
    if item.reason == INACTIVE:
        raise ValidationFailed(
            f'Product "{item.product_name}" is not available',
            [FieldError("product_id", f'Product "{item.product_name}" is not available')],
        )
    if item.reason == INSUFFICIENT_STOCK:
        raise InsufficientStock(
            item.product_id, item.product_name, item.requested_quantity, item.available_quantity
        )


def merge_quantities(requests: Iterable[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Sum quantities of repeated products, keeping first-seen order."""
    merged: Dict[int, int] = {}
    for product_id, quantity in requests:
        merged[product_id] = merged.get(product_id, 0) + quantity
    return list(merged.items())


class InventoryValidator:
    """Read-only availability checks over live product rows."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def load(self, product_ids: Iterable[int], for_update: bool = False) -> Dict[int, ProductModel]:
        return self.repo.get_products(product_ids, for_update=for_update)

    def report(self, requests: Sequence[Tuple[int, int]]) -> AvailabilityReport:
        products = self.load(pid for pid, _ in requests)
        return check_availability(requests, products)

    def ensure_available(
        self,
        requests: Sequence[Tuple[int, int]],
        products: Mapping[int, ProductModel] | None = None,
    ) -> Dict[int, ProductModel]:
        """Raise on the first unsatisfiable request, return the product snapshot otherwise."""
        if products is None:
            products = self.load(pid for pid, _ in requests)
        for product_id, quantity in requests:
            raise_for(check_item(product_id, quantity, products.get(product_id)))
        return dict(products)
