from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from storefront.data.models import CartItemModel, OrderStatusHistoryModel, ProductModel
from storefront.domain.enums import OrderStatus, ShippingMethod
from storefront.domain.errors import (
    BusinessRuleViolation,
    Forbidden,
    InsufficientStock,
    NotFound,
    ValidationFailed,
)
from storefront.domain.filters import OrderFilters
from storefront.domain.schemas import LineItemIn, OrderCreate
from storefront.services import order_service as order_module
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService, generate_order_number


@pytest.fixture
def orders(db, notifier):
    return OrderService(db, notifier)


@pytest.fixture
def checkout(orders, customer, make_address, principal_for):
    address = make_address(customer)

    def _checkout(items=None, method=ShippingMethod.STANDARD, user=None):
        payload = OrderCreate(
            shipping_address_id=address.id,
            shipping_method=method,
            items=[LineItemIn(product_id=p, quantity=q) for p, q in items] if items is not None else None,
        )
        return orders.create_order(principal_for(user or customer), payload)

    return _checkout


def _history_count(db, order_id):
    return db.query(OrderStatusHistoryModel).filter_by(order_id=order_id).count()


def test_order_number_format():
    number = generate_order_number(1_700_000_123_456)
    prefix, millis, suffix = number.split("-")

    assert prefix == "ORD"
    assert millis == "00123456"
    assert len(suffix) == 4
    assert suffix.isalnum() and suffix.upper() == suffix


def test_create_order_from_items(db, checkout, make_product, notifier):
    product = make_product(price="10.00", stock=5)

    order = checkout([(product.id, 2)])

    assert order["status"] == "pending"
    assert order["subtotal"] == Decimal("20.00")
    assert order["tax_amount"] == Decimal("1.60")
    assert order["shipping_amount"] == Decimal("9.99")
    assert order["total_amount"] == Decimal("31.59")
    assert len(order["items"]) == 1
    assert order["items"][0]["unit_price"] == Decimal("10.00")
    assert order["items"][0]["total_price"] == Decimal("20.00")
    assert product.inventory_quantity == 3

    history = db.query(OrderStatusHistoryModel).filter_by(order_id=order["id"]).all()
    assert [(h.previous_status, h.new_status) for h in history] == [(None, "pending")]
    assert notifier.calls == [("order_placed", order["user_id"], order["id"], order["order_number"])]


def test_create_order_from_cart_empties_it(db, checkout, customer, make_product):
    product = make_product(price="12.50", stock=4)
    CartService(db).add_item(customer.id, product.id, 4)

    order = checkout()

    assert order["items"][0]["quantity"] == 4
    assert order["subtotal"] == Decimal("50.00")
    # exactly 50.00 still pays shipping
    assert order["shipping_amount"] == Decimal("9.99")
    assert db.query(CartItemModel).count() == 0
    assert product.inventory_quantity == 0


def test_empty_cart_cannot_be_checked_out(checkout):
    with pytest.raises(ValidationFailed):
        checkout()


def test_address_of_someone_else_is_not_found(db, orders, make_user, make_product, make_address, principal_for):
    owner, intruder = make_user(), make_user()
    address = make_address(owner)
    product = make_product()

    with pytest.raises(NotFound):
        orders.create_order(
            principal_for(intruder),
            OrderCreate(shipping_address_id=address.id, items=[LineItemIn(product_id=product.id, quantity=1)]),
        )


def test_insufficient_stock_rolls_everything_back(db, checkout, make_product):
    plenty = make_product(stock=10)
    scarce = make_product(stock=1)

    with pytest.raises(InsufficientStock):
        checkout([(plenty.id, 2), (scarce.id, 2)])

    db.expire_all()
    assert db.get(ProductModel, plenty.id).inventory_quantity == 10
    assert db.query(OrderStatusHistoryModel).count() == 0


def test_repeated_lines_are_checked_together(checkout, make_product):
    product = make_product(stock=3)
    with pytest.raises(InsufficientStock):
        checkout([(product.id, 2), (product.id, 2)])


def test_backorder_can_go_negative(checkout, make_product):
    product = make_product(stock=1, allow_backorder=True)
    checkout([(product.id, 3)])
    assert product.inventory_quantity == -2


def test_snapshot_is_isolated_from_product_changes(db, orders, checkout, customer, make_product, principal_for):
    product = make_product(price="10.00", name="Kettle")
    order = checkout([(product.id, 1)])

    product.price = Decimal("99.00")
    product.name = "Renamed kettle"
    db.commit()
    db.expire_all()

    stored = orders.get_order(principal_for(customer), order["id"])
    assert stored["items"][0]["product_name"] == "Kettle"
    assert stored["items"][0]["unit_price"] == Decimal("10.00")


def test_order_number_is_regenerated_on_collision(db, checkout, make_product, monkeypatch):
    product = make_product(stock=10)
    first = checkout([(product.id, 1)])

    numbers = iter([first["order_number"], first["order_number"], "ORD-00000001-ABCD"])
    monkeypatch.setattr(order_module, "generate_order_number", lambda: next(numbers))

    second = checkout([(product.id, 1)])

    assert second["order_number"] == "ORD-00000001-ABCD"
    assert _history_count(db, second["id"]) == 1


def test_order_number_retries_are_bounded(checkout, make_product, monkeypatch):
    product = make_product(stock=10)
    first = checkout([(product.id, 1)])
    monkeypatch.setattr(order_module, "generate_order_number", lambda: first["order_number"])

    with pytest.raises(Exception) as exc:
        checkout([(product.id, 1)])
    assert not isinstance(exc.value, IntegrityError)
    assert exc.value.code == "RESOURCE_EXISTS"
    assert product.inventory_quantity == 9


def test_status_updates_follow_the_table(db, orders, checkout, admin, make_product, principal_for, notifier):
    product = make_product(stock=5)
    order = checkout([(product.id, 1)])
    boss = principal_for(admin)

    updated = orders.update_order_status(boss, order["id"], OrderStatus.CONFIRMED)
    assert updated["status"] == "confirmed"
    assert updated["confirmed_at"] is not None

    with pytest.raises(BusinessRuleViolation):
        orders.update_order_status(boss, order["id"], OrderStatus.DELIVERED)

    orders.update_order_status(boss, order["id"], OrderStatus.PROCESSING)
    shipped = orders.update_order_status(boss, order["id"], OrderStatus.SHIPPED, tracking_number="TRK-1")
    assert shipped["tracking_number"] == "TRK-1"
    assert shipped["shipped_at"] is not None

    history = orders.get_history(boss, order["id"])
    assert [(h["previous_status"], h["new_status"]) for h in history] == [
        (None, "pending"),
        ("pending", "confirmed"),
        ("confirmed", "processing"),
        ("processing", "shipped"),
    ]
    assert notifier.calls[-1] == ("order_status_changed", order["user_id"], order["id"], "processing", "shipped")


def test_customers_cannot_change_status(orders, checkout, customer, make_product, principal_for):
    order = checkout([(make_product().id, 1)])
    with pytest.raises(Forbidden):
        orders.update_order_status(principal_for(customer), order["id"], OrderStatus.CONFIRMED)


def test_cancel_restores_stock_once(db, orders, checkout, admin, customer, make_product, principal_for):
    product = make_product(stock=5)
    order = checkout([(product.id, 2)])
    assert product.inventory_quantity == 3

    cancelled = orders.cancel_order(principal_for(customer), order["id"], "changed my mind")
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_at"] is not None
    assert product.inventory_quantity == 5

    orders.update_order_status(principal_for(admin), order["id"], OrderStatus.REFUNDED)
    assert product.inventory_quantity == 5

    history = orders.get_history(principal_for(admin), order["id"])
    assert history[1]["comment"] == "Order cancelled: changed my mind"
    assert len(history) == 3


def test_cancel_requires_a_reason(orders, checkout, customer, make_product, principal_for):
    order = checkout([(make_product().id, 1)])
    with pytest.raises(ValidationFailed):
        orders.cancel_order(principal_for(customer), order["id"], "   ")


def test_customer_cancellation_rules(db, orders, checkout, customer, admin, make_user, make_product, principal_for):
    order = checkout([(make_product().id, 1)])

    with pytest.raises(Forbidden):
        orders.cancel_order(principal_for(make_user()), order["id"], "not mine")

    boss = principal_for(admin)
    orders.update_order_status(boss, order["id"], OrderStatus.CONFIRMED)
    orders.update_order_status(boss, order["id"], OrderStatus.PROCESSING)

    with pytest.raises(ValidationFailed):
        orders.cancel_order(principal_for(customer), order["id"], "too late")

    assert _history_count(db, order["id"]) == 3


def test_admin_cancels_any_non_terminal_order(orders, checkout, admin, make_product, principal_for):
    boss = principal_for(admin)
    order = checkout([(make_product(stock=5).id, 1)])
    for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED):
        orders.update_order_status(boss, order["id"], status)

    assert orders.cancel_order(boss, order["id"], "lost in transit")["status"] == "cancelled"


def test_admin_cannot_cancel_delivered_order(orders, checkout, admin, make_product, principal_for):
    boss = principal_for(admin)
    order = checkout([(make_product(stock=5).id, 1)])
    for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        orders.update_order_status(boss, order["id"], status)

    with pytest.raises(BusinessRuleViolation):
        orders.cancel_order(boss, order["id"], "too late")


def test_confirm_payment(db, orders, checkout, admin, customer, make_product, principal_for):
    order = checkout([(make_product().id, 1)])
    boss = principal_for(admin)

    with pytest.raises(Forbidden):
        orders.confirm_payment(principal_for(customer), order["id"])

    confirmed = orders.confirm_payment(boss, order["id"])
    assert confirmed["payment_confirmed"] is True
    assert confirmed["status"] == "confirmed"
    assert _history_count(db, order["id"]) == 2

    with pytest.raises(ValidationFailed):
        orders.confirm_payment(boss, order["id"])
    assert _history_count(db, order["id"]) == 2


def test_confirm_payment_keeps_later_status(orders, checkout, admin, make_product, principal_for):
    boss = principal_for(admin)
    order = checkout([(make_product().id, 1)])
    orders.update_order_status(boss, order["id"], OrderStatus.CONFIRMED)
    orders.update_order_status(boss, order["id"], OrderStatus.PROCESSING)

    result = orders.confirm_payment(boss, order["id"], "wire transfer received")

    assert result["status"] == "processing"
    history = orders.get_history(boss, order["id"])
    assert (history[-1]["previous_status"], history[-1]["new_status"]) == ("processing", "processing")
    assert history[-1]["changed_by"] == admin.id


def test_read_access(orders, checkout, customer, admin, make_user, make_product, principal_for):
    order = checkout([(make_product().id, 1)])

    assert orders.get_order(principal_for(admin), order["id"])["id"] == order["id"]
    assert orders.get_order_by_number(principal_for(customer), order["order_number"])["id"] == order["id"]
    with pytest.raises(Forbidden):
        orders.get_order(principal_for(make_user()), order["id"])
    with pytest.raises(NotFound):
        orders.get_order(principal_for(admin), 999)


def test_customers_see_only_visible_history(orders, checkout, customer, admin, make_product, principal_for):
    order = checkout([(make_product().id, 1)])
    orders.update_order_status(
        principal_for(admin), order["id"], OrderStatus.CONFIRMED, comment="fraud check", is_customer_visible=False
    )

    assert len(orders.get_history(principal_for(admin), order["id"])) == 2
    assert len(orders.get_history(principal_for(customer), order["id"])) == 1


def test_list_orders_scopes_and_paginates(orders, checkout, customer, admin, make_user, make_product, principal_for):
    product = make_product(stock=20)
    for _ in range(3):
        checkout([(product.id, 1)])
    stranger = make_user()

    page = orders.list_orders(principal_for(customer), OrderFilters(limit=2))
    assert page["pagination"] == {
        "page": 1,
        "limit": 2,
        "total": 3,
        "total_pages": 2,
        "has_next_page": True,
        "has_previous_page": False,
    }
    assert len(page["items"]) == 2

    assert orders.list_orders(principal_for(stranger), OrderFilters())["pagination"]["total"] == 0
    assert orders.list_orders(principal_for(admin), OrderFilters(status=OrderStatus.PENDING))["pagination"]["total"] == 3
    assert orders.list_orders(principal_for(admin), OrderFilters(status=OrderStatus.SHIPPED))["items"] == []


def test_statistics(orders, checkout, admin, make_product, principal_for):
    boss = principal_for(admin)
    product = make_product(price="10.00", stock=20)
    delivered = checkout([(product.id, 1)])
    checkout([(product.id, 1)])
    for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        orders.update_order_status(boss, delivered["id"], status)

    stats = orders.get_statistics(boss)

    assert stats["total_orders"] == 2
    assert stats["pending_orders"] == 1
    assert stats["completed_orders"] == 1
    assert stats["cancelled_orders"] == 0
    assert stats["by_status"]["delivered"] == 1
    assert stats["total_revenue"] == Decimal("20.79")


def test_check_inventory_and_totals(orders, make_product):
    product = make_product(price="30.00", stock=1)

    report = orders.check_inventory([LineItemIn(product_id=product.id, quantity=2)])
    assert report["is_valid"] is False
    assert report["items"][0]["reason"] == "insufficient_stock"

    totals = orders.calculate_totals([LineItemIn(product_id=product.id, quantity=2)], ShippingMethod.EXPRESS)
    assert totals["subtotal"] == Decimal("60.00")
    assert totals["shipping_amount"] == Decimal("0.00")
    assert totals["total_amount"] == Decimal("64.80")

    with pytest.raises(NotFound):
        orders.calculate_totals([LineItemIn(product_id=777, quantity=1)])
