# storefront/repos/order_repo.py
from decimal import Decimal
from typing import Dict, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.order_status_history import OrderStatusHistoryModel
from storefront.domain.enums import OrderStatus
from storefront.domain.filters import OrderFilters

_SORT_COLUMNS = {
    "created_at": OrderModel.created_at,
    "updated_at": OrderModel.updated_at,
    "total_amount": OrderModel.total_amount,
    "order_number": OrderModel.order_number,
}


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        # savepoint: a clashing order number only undoes this insert
        with self.db.begin_nested():
            self.db.add(order)
            self.db.flush()
        return order

    def add_items(self, order: OrderModel, items: List[OrderItemModel]) -> None:
        order.items.extend(items)
        self.db.flush()

    def add_history(self, order: OrderModel, entry: OrderStatusHistoryModel) -> OrderStatusHistoryModel:
        order.history.append(entry)
        self.db.flush()
        return entry

    def get_order(self, order_id: int, for_update: bool = False) -> OrderModel | None:
        stmt = (
            select(OrderModel)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.history))
            .where(OrderModel.id == order_id)
        )
        if for_update:
            stmt = stmt.with_for_update(of=OrderModel)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_number(self, order_number: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.history))
            .where(OrderModel.order_number == order_number)
        ).scalar_one_or_none()

    def get_history(self, order_id: int, customer_visible_only: bool = False) -> List[OrderStatusHistoryModel]:
        stmt = select(OrderStatusHistoryModel).where(OrderStatusHistoryModel.order_id == order_id)
        if customer_visible_only:
            stmt = stmt.where(OrderStatusHistoryModel.is_customer_visible.is_(True))
        return list(self.db.execute(stmt.order_by(OrderStatusHistoryModel.id)).scalars())

    def list_orders(self, filters: OrderFilters, user_id: int | None = None) -> Tuple[List[OrderModel], int]:
        conditions = []
        if user_id is not None:
            conditions.append(OrderModel.user_id == user_id)
        if filters.status is not None:
            conditions.append(OrderModel.status == filters.status.value)
        if filters.order_number:
            conditions.append(OrderModel.order_number == filters.order_number)
        if filters.date_from is not None:
            conditions.append(OrderModel.created_at >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(OrderModel.created_at <= filters.date_to)
        if filters.min_amount is not None:
            conditions.append(OrderModel.total_amount >= filters.min_amount)
        if filters.max_amount is not None:
            conditions.append(OrderModel.total_amount <= filters.max_amount)
        if filters.shipping_method is not None:
            conditions.append(OrderModel.shipping_method == filters.shipping_method.value)

        total = self.db.execute(
            select(func.count()).select_from(OrderModel).where(*conditions)
        ).scalar_one()

        column = _SORT_COLUMNS[filters.sort_by]
        order_by = column.asc() if filters.sort_order == "asc" else column.desc()
        stmt = (
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(*conditions)
            .order_by(order_by, OrderModel.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        return list(self.db.execute(stmt).scalars()), total

    def count_by_status(self, user_id: int | None = None) -> Dict[str, int]:
        stmt = select(OrderModel.status, func.count()).group_by(OrderModel.status)
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return {status: count for status, count in self.db.execute(stmt)}

    def delivered_revenue(self, user_id: int | None = None) -> Decimal:
        stmt = select(func.coalesce(func.sum(OrderModel.total_amount), 0)).where(
            OrderModel.status == OrderStatus.DELIVERED.value
        )
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return Decimal(str(self.db.execute(stmt).scalar_one())).quantize(Decimal("0.01"))
