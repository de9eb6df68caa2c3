import pytest

from storefront.domain.enums import ProductStatus
from storefront.domain.errors import NotFound
from storefront.domain.schemas import ProductStatusBulkUpdate
from storefront.services.product_service import ProductService


@pytest.fixture
def products(db):
    return ProductService(db)


def test_delete_discontinues(products, make_product):
    product = make_product()

    deleted = products.delete_product(product.id)

    assert deleted["status"] == ProductStatus.DISCONTINUED.value
    assert products.get_product(product.id)["status"] == ProductStatus.DISCONTINUED.value


def test_delete_unknown_product(products):
    with pytest.raises(NotFound):
        products.delete_product(999)


def test_get_by_slug_hides_non_active(products, make_product):
    active = make_product()
    draft = make_product(status=ProductStatus.DRAFT)

    assert products.get_by_slug(active.slug)["id"] == active.id
    with pytest.raises(NotFound):
        products.get_by_slug(draft.slug)
    assert products.get_by_slug(draft.slug, include_inactive=True)["id"] == draft.id
    with pytest.raises(NotFound):
        products.get_by_slug("no-such-product")


def test_low_stock_lists_active_products_emptiest_first(products, make_product):
    plenty = make_product(stock=50)
    few = make_product(stock=3)
    none_left = make_product(stock=0)
    make_product(stock=1, status=ProductStatus.INACTIVE)

    ids = [p["id"] for p in products.list_low_stock()]

    assert ids == [none_left.id, few.id]
    assert plenty.id in [p["id"] for p in products.list_low_stock(threshold=50)]
    assert products.list_low_stock(threshold=0)[0]["id"] == none_left.id


def test_bulk_status_update(products, make_product):
    first = make_product()
    second = make_product()
    untouched = make_product()

    result = products.bulk_update_status(
        ProductStatusBulkUpdate(product_ids=[first.id, second.id, second.id, 999], status=ProductStatus.INACTIVE)
    )

    assert result == {"updated": 2}
    assert products.get_product(first.id)["status"] == ProductStatus.INACTIVE.value
    assert products.get_product(second.id)["status"] == ProductStatus.INACTIVE.value
    assert products.get_product(untouched.id)["status"] == ProductStatus.ACTIVE.value
