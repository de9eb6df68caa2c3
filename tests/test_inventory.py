import pytest

from storefront.domain.enums import ProductStatus
from storefront.domain.errors import InsufficientStock, NotFound, ValidationFailed
from storefront.services.inventory import (
    INACTIVE,
    INSUFFICIENT_STOCK,
    NOT_FOUND,
    InventoryValidator,
    merge_quantities,
)


def test_report_flags_each_problem(db, make_product):
    ok = make_product(stock=5)
    short = make_product(stock=1)
    draft = make_product(status=ProductStatus.DRAFT)

    report = InventoryValidator(db).report([(ok.id, 5), (short.id, 2), (draft.id, 1), (999, 1)])

    assert not report.is_valid
    reasons = [i.reason for i in report.items]
    assert reasons == [None, INSUFFICIENT_STOCK, INACTIVE, NOT_FOUND]
    assert report.items[1].available_quantity == 1
    assert [i.product_id for i in report.unavailable] == [short.id, draft.id, 999]


def test_backorder_allows_any_quantity(db, make_product):
    product = make_product(stock=0, allow_backorder=True)

    report = InventoryValidator(db).report([(product.id, 50)])

    assert report.is_valid
    assert report.items[0].allow_backorder is True


def test_ensure_available_raises_for_first_failure(db, make_product):
    validator = InventoryValidator(db)
    short = make_product(stock=1, name="Lamp")

    with pytest.raises(InsufficientStock) as exc:
        validator.ensure_available([(short.id, 3)])
    assert 'Insufficient inventory for product "Lamp"' in exc.value.message
    assert isinstance(exc.value, ValidationFailed)

    with pytest.raises(NotFound):
        validator.ensure_available([(12345, 1)])

    inactive = make_product(status=ProductStatus.INACTIVE)
    with pytest.raises(ValidationFailed):
        validator.ensure_available([(inactive.id, 1)])


def test_ensure_available_returns_products(db, make_product):
    product = make_product()
    products = InventoryValidator(db).ensure_available([(product.id, 2)])
    assert products[product.id].name == product.name


def test_merge_quantities_keeps_order():
    assert merge_quantities([(2, 1), (1, 3), (2, 4)]) == [(2, 5), (1, 3)]
