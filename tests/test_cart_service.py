from decimal import Decimal

import pytest

from storefront.data.models import CartItemModel, CartModel
from storefront.domain.enums import ProductStatus
from storefront.domain.errors import InsufficientStock, NotFound, ValidationFailed
from storefront.services.cart_service import CartService


@pytest.fixture
def carts(db):
    return CartService(db)


def test_get_or_create_is_idempotent(db, carts, customer):
    first = carts.get_or_create(customer.id)
    second = carts.get_or_create(customer.id)

    assert first == second
    assert db.query(CartModel).filter_by(user_id=customer.id).count() == 1


def test_empty_cart_summary(carts, customer):
    cart = carts.get_cart(customer.id)

    assert cart["items"] == []
    assert cart["summary"] == {
        "total_items": 0,
        "total_quantity": 0,
        "subtotal": Decimal("0.00"),
        "estimated_tax": Decimal("0.00"),
        "estimated_total": Decimal("0.00"),
    }


def test_adding_same_product_merges_quantity(db, carts, customer, make_product):
    product = make_product(stock=10)

    carts.add_item(customer.id, product.id, 2)
    cart = carts.add_item(customer.id, product.id, 3)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5
    assert db.query(CartItemModel).count() == 1


def test_summary_uses_tax_estimate(carts, customer, make_product):
    product = make_product(price="10.00", stock=5)

    cart = carts.add_item(customer.id, product.id, 2)

    assert cart["summary"]["subtotal"] == Decimal("20.00")
    assert cart["summary"]["estimated_tax"] == Decimal("1.60")
    assert cart["summary"]["estimated_total"] == Decimal("21.60")
    assert cart["items"][0]["product"]["price"] == Decimal("10.00")


def test_add_beyond_stock_leaves_cart_unchanged(carts, customer, make_product):
    product = make_product(stock=3)
    carts.add_item(customer.id, product.id, 2)

    with pytest.raises(InsufficientStock):
        carts.add_item(customer.id, product.id, 2)

    cart = carts.get_cart(customer.id)
    assert cart["items"][0]["quantity"] == 2


def test_quantity_limit(carts, customer, make_product):
    product = make_product(stock=500)
    carts.add_item(customer.id, product.id, 60)

    with pytest.raises(ValidationFailed):
        carts.add_item(customer.id, product.id, 40)
    with pytest.raises(ValidationFailed):
        carts.add_item(customer.id, product.id, 0)

    assert carts.get_cart(customer.id)["items"][0]["quantity"] == 60


def test_inactive_product_cannot_be_added(carts, customer, make_product):
    product = make_product(status=ProductStatus.DRAFT)
    with pytest.raises(ValidationFailed):
        carts.add_item(customer.id, product.id, 1)


def test_missing_product_cannot_be_added(carts, customer):
    with pytest.raises(NotFound):
        carts.add_item(customer.id, 4242, 1)


def test_update_item_validates_absolute_quantity(carts, customer, make_product):
    product = make_product(stock=4)
    item_id = carts.add_item(customer.id, product.id, 1)["items"][0]["id"]

    cart = carts.update_item(customer.id, item_id, 4)
    assert cart["items"][0]["quantity"] == 4

    with pytest.raises(InsufficientStock):
        carts.update_item(customer.id, item_id, 5)
    assert carts.get_cart(customer.id)["items"][0]["quantity"] == 4


def test_items_of_other_carts_are_not_found(carts, customer, make_user, make_product):
    product = make_product()
    item_id = carts.add_item(customer.id, product.id, 1)["items"][0]["id"]
    other = make_user()

    with pytest.raises(NotFound):
        carts.update_item(other.id, item_id, 2)
    with pytest.raises(NotFound):
        carts.remove_item(other.id, item_id)


def test_remove_and_clear(carts, customer, make_product):
    a, b = make_product(), make_product()
    carts.add_item(customer.id, a.id, 1)
    cart = carts.add_item(customer.id, b.id, 1)

    item_a = next(i for i in cart["items"] if i["product_id"] == a.id)
    cart = carts.remove_item(customer.id, item_a["id"])
    assert [i["product_id"] for i in cart["items"]] == [b.id]

    cart = carts.clear(customer.id)
    assert cart["items"] == []


def test_deactivated_products_are_hidden(db, carts, customer, make_product):
    product = make_product()
    carts.add_item(customer.id, product.id, 1)

    product.status = ProductStatus.INACTIVE.value
    db.commit()

    cart = carts.get_cart(customer.id)
    assert cart["items"] == []
    assert cart["summary"]["total_items"] == 0


def test_variant_is_stored(carts, customer, make_product):
    product = make_product()
    cart = carts.add_item(customer.id, product.id, 1, {"size": "M", "color": "red"})
    assert cart["items"][0]["product_variant"] == {"size": "M", "color": "red"}
