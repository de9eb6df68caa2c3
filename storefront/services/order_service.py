# storefront/services/order_service.py
import math
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy.orm import Session

from storefront.data.database import unit_of_work
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.order_status_history import OrderStatusHistoryModel
from storefront.domain.enums import OrderStatus, ShippingMethod
from storefront.domain.errors import Forbidden, InsufficientStock, NotFound, ValidationFailed
from storefront.domain.filters import OrderFilters
from storefront.domain.order_status import (
    CUSTOMER_CANCELLABLE,
    INITIAL_STATUS,
    TIMESTAMP_FIELDS,
    ensure_transition,
    restores_stock,
)
from storefront.domain.schemas import LineItemIn, OrderCreate
from storefront.repos.address_repo import AddressRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.security import Principal
from storefront.services.cart_service import CartService
from storefront.services.inventory import InventoryValidator, merge_quantities
from storefront.services.notification_service import NotificationService
from storefront.services.pricing import PricingConfig, calculate_order_totals, line_total, money
from storefront.utils.db_errors import db_errors
from storefront.utils.logging import get_logger
from storefront.utils.retry import order_number_retry

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(now_ms: int | None = None) -> str:
    """ORD-<last 8 digits of epoch millis>-<4 random uppercase alphanumerics>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"ORD-{str(now_ms)[-8:]}-{suffix}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """
    Order lifecycle: checkout, status transitions, cancellation, payment
    confirmation and the read side.

    Every write runs in one unit of work, so stock, order rows, history and
    the emptied cart either all change or none of them do. Notifications go
    out only after the commit.
    """

    def __init__(self, db: Session, notifier: NotificationService | None = None,
                 pricing: PricingConfig | None = None, log=None):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)
        self.addresses = AddressRepo(db)
        self.inventory = InventoryValidator(db)
        self.pricing = pricing or PricingConfig()
        self.log = log or get_logger(__name__)
        self.notifier = notifier or NotificationService(self.log)
        self.carts = CartService(db, self.pricing, self.log)

    # ---------------------------------------------------------------- serialization

    @staticmethod
    def _order_to_dict(order: OrderModel) -> Dict[str, Any]:
        return {
            "id": order.id,
            "order_number": order.order_number,
            "user_id": order.user_id,
            "status": order.status,
            "payment_confirmed": order.payment_confirmed,
            "subtotal": order.subtotal,
            "tax_amount": order.tax_amount,
            "shipping_amount": order.shipping_amount,
            "discount_amount": order.discount_amount,
            "total_amount": order.total_amount,
            "shipping_method": order.shipping_method,
            "shipping_address_id": order.shipping_address_id,
            "tracking_number": order.tracking_number,
            "customer_notes": order.customer_notes,
            "confirmed_at": order.confirmed_at,
            "shipped_at": order.shipped_at,
            "delivered_at": order.delivered_at,
            "cancelled_at": order.cancelled_at,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
            "items": [
                {
                    "id": i.id,
                    "product_id": i.product_id,
                    "product_name": i.product_name,
                    "product_slug": i.product_slug,
                    "quantity": i.quantity,
                    "unit_price": i.unit_price,
                    "total_price": i.total_price,
                    "product_variant": i.product_variant,
                }
                for i in order.items
            ],
        }

    @staticmethod
    def _history_to_dict(entry: OrderStatusHistoryModel) -> Dict[str, Any]:
        return {
            "id": entry.id,
            "previous_status": entry.previous_status,
            "new_status": entry.new_status,
            "comment": entry.comment,
            "changed_by": entry.changed_by,
            "is_customer_visible": entry.is_customer_visible,
            "created_at": entry.created_at,
        }

    # ---------------------------------------------------------------- checkout

    def _requested_lines(self, principal: Principal, payload: OrderCreate) -> List[Tuple[int, int, Any]]:
        if payload.items is not None:
            return [(i.product_id, i.quantity, i.product_variant) for i in payload.items]

        cart_items = self.carts.checkout_lines(principal.user_id)
        if not cart_items:
            raise ValidationFailed.for_field("items", "Cart is empty")
        return [(i.product_id, i.quantity, i.product_variant) for i in cart_items]

    @order_number_retry()
    def _insert_order(self, fields: Dict[str, Any]) -> OrderModel:
        order = OrderModel(order_number=generate_order_number(), **fields)
        return self.repo.create_order(order)

    @db_errors("create", "order")
    def create_order(self, principal: Principal, payload: OrderCreate) -> Dict[str, Any]:
        self.log.info(f"Creating order for user {principal.user_id}")
        from_cart = payload.items is None

        with unit_of_work(self.db):
            address = self.addresses.get_user_address(principal.user_id, payload.shipping_address_id)
            if not address:
                raise NotFound("Shipping address")

            lines = self._requested_lines(principal, payload)
            requests = merge_quantities((pid, qty) for pid, qty, _ in lines)

            # locked until commit, the checks below and the decrement see the same rows
            products = self.inventory.load((pid for pid, _ in requests), for_update=True)
            self.inventory.ensure_available(requests, products)

            snapshot = []
            for product_id, quantity, variant in lines:
                product = products[product_id]
                snapshot.append(
                    OrderItemModel(
                        product_id=product.id,
                        product_name=product.name,
                        product_slug=product.slug,
                        quantity=quantity,
                        unit_price=money(product.price),
                        total_price=line_total(product.price, quantity),
                        product_variant=variant,
                    )
                )
            totals = calculate_order_totals(
                [(item.unit_price, item.quantity) for item in snapshot],
                payload.shipping_method,
                self.pricing,
            )

            for product_id, quantity in requests:
                if self.products.decrement_stock(product_id, quantity) == 0:
                    product = products[product_id]
                    raise InsufficientStock(
                        product_id, product.name, quantity, product.inventory_quantity or 0
                    )

            order = self._insert_order(
                {
                    "user_id": principal.user_id,
                    "status": INITIAL_STATUS.value,
                    "shipping_method": ShippingMethod(payload.shipping_method).value,
                    "shipping_address_id": address.id,
                    "customer_notes": payload.customer_notes,
                    **totals.to_dict(),
                }
            )
            self.repo.add_items(order, snapshot)
            self.repo.add_history(
                order,
                OrderStatusHistoryModel(
                    previous_status=None,
                    new_status=INITIAL_STATUS.value,
                    comment="Order created",
                    changed_by=principal.user_id,
                    is_customer_visible=True,
                ),
            )

            if from_cart:
                self.carts.clear_items(principal.user_id)

        self.log.info(
            f"Order {order.order_number} ({order.id}) created for user {principal.user_id}, "
            f"total {order.total_amount}"
        )
        self.notifier.order_placed(principal.user_id, order.id, order.order_number)
        return self._order_to_dict(order)

    # ---------------------------------------------------------------- transitions

    def _transition(self, order: OrderModel, new_status: OrderStatus, actor: int,
                    comment: str | None = None, is_customer_visible: bool = True) -> OrderStatus:
        previous = OrderStatus(order.status)
        ensure_transition(previous, new_status)

        if restores_stock(previous, new_status):
            for item in order.items:
                self.products.increment_stock(item.product_id, item.quantity)
            self.log.info(f"Restored stock for order {order.order_number} ({previous.value} -> {new_status.value})")

        now = _now()
        order.status = new_status.value
        order.updated_at = now
        timestamp_field = TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field:
            setattr(order, timestamp_field, now)

        self.repo.add_history(
            order,
            OrderStatusHistoryModel(
                previous_status=previous.value,
                new_status=new_status.value,
                comment=comment,
                changed_by=actor,
                is_customer_visible=is_customer_visible,
            ),
        )
        return previous

    def _locked_order(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id, for_update=True)
        if not order:
            raise NotFound("Order")
        return order

    @db_errors("update", "order")
    def update_order_status(self, principal: Principal, order_id: int, new_status: OrderStatus,
                            comment: str | None = None, is_customer_visible: bool = True,
                            tracking_number: str | None = None) -> Dict[str, Any]:
        if not principal.is_admin:
            raise Forbidden("Only administrators can change order status")
        new_status = OrderStatus(new_status)

        with unit_of_work(self.db):
            order = self._locked_order(order_id)
            previous = self._transition(order, new_status, principal.user_id, comment, is_customer_visible)
            if tracking_number:
                order.tracking_number = tracking_number

        self.log.info(f"Order {order.order_number}: {previous.value} -> {new_status.value}")
        self.notifier.order_status_changed(order.user_id, order.id, previous.value, new_status.value)
        return self._order_to_dict(order)

    @db_errors("update", "order")
    def cancel_order(self, principal: Principal, order_id: int, reason: str) -> Dict[str, Any]:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed.for_field("reason", "Cancellation reason is required")

        with unit_of_work(self.db):
            order = self._locked_order(order_id)

            if not principal.is_admin:
                if order.user_id != principal.user_id:
                    raise Forbidden("You can only cancel your own orders")
                if OrderStatus(order.status) not in CUSTOMER_CANCELLABLE:
                    raise ValidationFailed.for_field(
                        "status", f"Order cannot be cancelled in {order.status} status"
                    )

            previous = self._transition(
                order, OrderStatus.CANCELLED, principal.user_id, f"Order cancelled: {reason}"
            )

        self.log.info(f"Order {order.order_number} cancelled by user {principal.user_id}")
        self.notifier.order_status_changed(
            order.user_id, order.id, previous.value, OrderStatus.CANCELLED.value
        )
        return self._order_to_dict(order)

    @db_errors("update", "order")
    def confirm_payment(self, principal: Principal, order_id: int, comment: str | None = None,
                        is_customer_visible: bool = True) -> Dict[str, Any]:
        if not principal.is_admin:
            raise Forbidden("Only administrators can confirm payments")

        with unit_of_work(self.db):
            order = self._locked_order(order_id)
            if order.payment_confirmed:
                raise ValidationFailed.for_field("payment_confirmed", "Payment already confirmed")

            order.payment_confirmed = True
            comment = comment or "Payment confirmed"
            previous = OrderStatus(order.status)

            if previous == OrderStatus.PENDING:
                self._transition(order, OrderStatus.CONFIRMED, principal.user_id, comment, is_customer_visible)
            else:
                order.updated_at = _now()
                self.repo.add_history(
                    order,
                    OrderStatusHistoryModel(
                        previous_status=previous.value,
                        new_status=previous.value,
                        comment=comment,
                        changed_by=principal.user_id,
                        is_customer_visible=is_customer_visible,
                    ),
                )

        self.log.info(f"Payment confirmed for order {order.order_number}")
        if order.status != previous.value:
            self.notifier.order_status_changed(order.user_id, order.id, previous.value, order.status)
        return self._order_to_dict(order)

    # ---------------------------------------------------------------- queries

    @staticmethod
    def _check_access(principal: Principal, order: OrderModel | None) -> OrderModel:
        if not order:
            raise NotFound("Order")
        if not principal.is_admin and order.user_id != principal.user_id:
            raise Forbidden("Access denied")
        return order

    @db_errors("read", "order")
    def get_order(self, principal: Principal, order_id: int) -> Dict[str, Any]:
        return self._order_to_dict(self._check_access(principal, self.repo.get_order(order_id)))

    @db_errors("read", "order")
    def get_order_by_number(self, principal: Principal, order_number: str) -> Dict[str, Any]:
        return self._order_to_dict(self._check_access(principal, self.repo.get_by_number(order_number)))

    @db_errors("read", "order")
    def list_orders(self, principal: Principal, filters: OrderFilters) -> Dict[str, Any]:
        user_id = None if principal.is_admin else principal.user_id
        orders, total = self.repo.list_orders(filters, user_id)
        total_pages = math.ceil(total / filters.limit) if total else 0

        return {
            "items": [self._order_to_dict(o) for o in orders],
            "pagination": {
                "page": filters.page,
                "limit": filters.limit,
                "total": total,
                "total_pages": total_pages,
                "has_next_page": filters.page < total_pages,
                "has_previous_page": filters.page > 1,
            },
        }

    @db_errors("read", "order")
    def get_history(self, principal: Principal, order_id: int) -> List[Dict[str, Any]]:
        self._check_access(principal, self.repo.get_order(order_id))
        entries = self.repo.get_history(order_id, customer_visible_only=not principal.is_admin)
        return [self._history_to_dict(e) for e in entries]

    @db_errors("read", "order")
    def get_statistics(self, principal: Principal) -> Dict[str, Any]:
        user_id = None if principal.is_admin else principal.user_id
        counts = self.repo.count_by_status(user_id)
        by_status = {s.value: counts.get(s.value, 0) for s in OrderStatus}

        return {
            "total_orders": sum(by_status.values()),
            "by_status": by_status,
            "pending_orders": by_status[OrderStatus.PENDING.value],
            "completed_orders": by_status[OrderStatus.DELIVERED.value],
            "cancelled_orders": by_status[OrderStatus.CANCELLED.value],
            "total_revenue": self.repo.delivered_revenue(user_id),
        }

    # ---------------------------------------------------------------- pre-checkout helpers

    @db_errors("read", "product")
    def check_inventory(self, items: Sequence[LineItemIn]) -> Dict[str, Any]:
        return self.inventory.report([(i.product_id, i.quantity) for i in items]).to_dict()

    @db_errors("read", "product")
    def calculate_totals(self, items: Sequence[LineItemIn],
                         shipping_method: ShippingMethod = ShippingMethod.STANDARD) -> Dict[str, Any]:
        """Totals at current prices. Stock is not checked here, only that the products exist."""
        products = self.inventory.load(i.product_id for i in items)
        lines = []
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                raise NotFound(f"Product {item.product_id}")
            lines.append((product.price, item.quantity))
        return calculate_order_totals(lines, shipping_method, self.pricing).to_dict()
