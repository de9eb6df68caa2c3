import pytest

from storefront.domain.errors import Conflict, NotFound, ValidationFailed
from storefront.domain.filters import CategoryFilters
from storefront.domain.schemas import CategoryCreate, CategoryUpdate
from storefront.services.category_service import CategoryService


@pytest.fixture
def categories(db):
    return CategoryService(db)


def test_create_generates_slug(categories):
    created = categories.create_category(CategoryCreate(name="  Home & Garden "))

    assert created["name"] == "Home & Garden"
    assert created["slug"] == "home-and-garden"
    assert created["parent_id"] is None
    assert created["is_active"] is True


def test_duplicate_name_conflicts(categories):
    categories.create_category(CategoryCreate(name="Toys"))
    with pytest.raises(Conflict) as exc:
        categories.create_category(CategoryCreate(name="Toys"))
    assert exc.value.message == "Category with this name already exists"


def test_slug_is_made_unique(categories):
    first = categories.create_category(CategoryCreate(name="Toys & Games"))
    second = categories.create_category(CategoryCreate(name="Toys and Games"))

    assert first["slug"] == "toys-and-games"
    assert second["slug"] == "toys-and-games-1"


def test_missing_parent_is_not_found(categories):
    with pytest.raises(NotFound) as exc:
        categories.create_category(CategoryCreate(name="Orphan", parent_id=999))
    assert exc.value.message == "Parent category not found"


def test_only_two_levels(categories):
    root = categories.create_category(CategoryCreate(name="Electronics"))
    child = categories.create_category(CategoryCreate(name="Phones", parent_id=root["id"]))

    with pytest.raises(ValidationFailed):
        categories.create_category(CategoryCreate(name="Android", parent_id=child["id"]))


def test_cannot_be_own_parent(categories):
    root = categories.create_category(CategoryCreate(name="Garden"))
    with pytest.raises(ValidationFailed):
        categories.update_category(root["id"], CategoryUpdate(parent_id=root["id"]))


def test_rename_regenerates_slug(categories):
    created = categories.create_category(CategoryCreate(name="Kitchen"))
    updated = categories.update_category(created["id"], CategoryUpdate(name="Kitchen Tools"))

    assert updated["slug"] == "kitchen-tools"
    assert categories.get_by_slug("kitchen-tools")["id"] == created["id"]


def test_rename_to_taken_name_conflicts(categories):
    categories.create_category(CategoryCreate(name="Music"))
    other = categories.create_category(CategoryCreate(name="Movies"))
    with pytest.raises(Conflict):
        categories.update_category(other["id"], CategoryUpdate(name="Music"))


def test_delete_with_children_conflicts(categories):
    root = categories.create_category(CategoryCreate(name="Sports"))
    categories.create_category(CategoryCreate(name="Tennis", parent_id=root["id"]))

    with pytest.raises(Conflict) as exc:
        categories.delete_category(root["id"])
    assert exc.value.message == "Cannot delete category with child categories"


def test_delete_with_only_inactive_children_still_conflicts(categories):
    root = categories.create_category(CategoryCreate(name="Clothes"))
    hats = categories.create_category(CategoryCreate(name="Hats", parent_id=root["id"]))
    categories.update_category(hats["id"], CategoryUpdate(is_active=False))

    with pytest.raises(Conflict):
        categories.delete_category(root["id"])
    assert categories.get_category(root["id"])["is_active"] is True


def test_delete_deactivates(categories):
    created = categories.create_category(CategoryCreate(name="Outlet"))

    deleted = categories.delete_category(created["id"])

    assert deleted["is_active"] is False
    assert categories.get_category(created["id"])["is_active"] is False


def test_filters_and_hierarchy(categories):
    root = categories.create_category(CategoryCreate(name="Fashion"))
    categories.create_category(CategoryCreate(name="Shoes", parent_id=root["id"]))
    categories.create_category(CategoryCreate(name="Hats", parent_id=root["id"], is_active=False))
    categories.create_category(CategoryCreate(name="Beauty"))

    roots = categories.list_categories(CategoryFilters(root_only=True))
    assert [c["name"] for c in roots] == ["Beauty", "Fashion"]

    children = categories.list_categories(CategoryFilters(parent_id=root["id"]))
    assert [c["name"] for c in children] == ["Hats", "Shoes"]

    inactive = categories.list_categories(CategoryFilters(is_active=False))
    assert [c["name"] for c in inactive] == ["Hats"]

    tree = categories.get_hierarchy()
    fashion = next(n for n in tree if n["name"] == "Fashion")
    assert [c["name"] for c in fashion["children"]] == ["Shoes"]


def test_unknown_category(categories):
    with pytest.raises(NotFound):
        categories.get_category(42)
    with pytest.raises(NotFound):
        categories.get_by_slug("nope")


def test_schema_reset_with_nested_categories_left_behind(categories, db, reset_schema):
    root = categories.create_category(CategoryCreate(name="Garden"))
    categories.create_category(CategoryCreate(name="Tools", parent_id=root["id"]))
    db.close()

    reset_schema()

    assert categories.list_categories(CategoryFilters()) == []
