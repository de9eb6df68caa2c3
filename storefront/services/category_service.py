# storefront/services/category_service.py
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.database import unit_of_work
from storefront.data.models.category import CategoryModel
from storefront.domain.errors import Conflict, NotFound, ValidationFailed
from storefront.domain.filters import CategoryFilters
from storefront.domain.schemas import CategoryCreate, CategoryUpdate
from storefront.repos.category_repo import CategoryRepo
from storefront.utils.db_errors import db_errors
from storefront.utils.logging import get_logger
from storefront.utils.slug import slugify, unique_slug


class CategoryService:
    """
    Two-level category tree: roots and their direct children.
    Deleting only deactivates, and is refused while children exist.
    """

    def __init__(self, db: Session, log=None):
        self.db = db
        self.repo = CategoryRepo(db)
        self.log = log or get_logger(__name__)

    @staticmethod
    def _to_dict(category: CategoryModel) -> Dict[str, Any]:
        return {
            "id": category.id,
            "name": category.name,
            "slug": category.slug,
            "description": category.description,
            "parent_id": category.parent_id,
            "is_active": category.is_active,
            "created_at": category.created_at,
            "updated_at": category.updated_at,
        }

    def _slug_for(self, name: str, exclude_id: int | None = None) -> str:
        try:
            base = slugify(name)
        except ValueError:
            base = ""
        if not base:
            raise ValidationFailed.for_field("name", "Category name must contain letters or digits")
        return unique_slug(base, lambda s: self.repo.slug_exists(s, exclude_id))

    def _check_name_free(self, name: str, exclude_id: int | None = None) -> None:
        if self.repo.find_by_name_or_slug(name, None, exclude_id):
            raise Conflict("Category with this name already exists")

    def _check_parent(self, parent_id: int, category_id: int | None = None) -> CategoryModel:
        if category_id is not None and parent_id == category_id:
            raise ValidationFailed.for_field("parent_id", "Category cannot be its own parent")

        parent = self.repo.get_category(parent_id)
        if not parent:
            raise NotFound("Parent category")
        if parent.parent_id is not None:
            raise ValidationFailed.for_field(
                "parent_id", "Categories can only be nested one level deep"
            )
        return parent

    @db_errors("create", "category")
    def create_category(self, payload: CategoryCreate) -> Dict[str, Any]:
        with unit_of_work(self.db):
            self._check_name_free(payload.name)
            if payload.parent_id is not None:
                self._check_parent(payload.parent_id)

            category = self.repo.add(
                CategoryModel(
                    name=payload.name,
                    slug=self._slug_for(payload.name),
                    description=payload.description,
                    parent_id=payload.parent_id,
                    is_active=payload.is_active,
                )
            )

        self.log.info(f"Category {category.id} '{category.name}' created")
        return self._to_dict(category)

    @db_errors("update", "category")
    def update_category(self, category_id: int, payload: CategoryUpdate) -> Dict[str, Any]:
        changes = payload.model_dump(exclude_unset=True)

        with unit_of_work(self.db):
            category = self.repo.get_category(category_id)
            if not category:
                raise NotFound("Category")

            name = changes.get("name")
            if name is not None:
                name = name.strip()
                if not name:
                    raise ValidationFailed.for_field("name", "Category name must not be blank")
                if name != category.name:
                    self._check_name_free(name, category.id)
                    category.slug = self._slug_for(name, category.id)
                category.name = name

            if "parent_id" in changes:
                parent_id = changes["parent_id"]
                if parent_id is not None:
                    self._check_parent(parent_id, category.id)
                    if self.repo.has_children(category.id):
                        raise ValidationFailed.for_field(
                            "parent_id", "A category with children cannot become a child category"
                        )
                category.parent_id = parent_id

            if "description" in changes:
                category.description = changes["description"]
            if changes.get("is_active") is not None:
                category.is_active = changes["is_active"]

            category.updated_at = datetime.now(timezone.utc)
            self.db.flush()

        self.log.info(f"Category {category.id} updated: {sorted(changes)}")
        return self._to_dict(category)

    @db_errors("delete", "category")
    def delete_category(self, category_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            category = self.repo.get_category(category_id)
            if not category:
                raise NotFound("Category")
            if self.repo.has_children(category.id):
                raise Conflict("Cannot delete category with child categories")

            category.is_active = False
            category.updated_at = datetime.now(timezone.utc)
            self.db.flush()

        self.log.info(f"Category {category.id} deactivated")
        return self._to_dict(category)

    @db_errors("read", "category")
    def get_category(self, category_id: int) -> Dict[str, Any]:
        category = self.repo.get_category(category_id)
        if not category:
            raise NotFound("Category")
        return self._to_dict(category)

    @db_errors("read", "category")
    def get_by_slug(self, slug: str) -> Dict[str, Any]:
        category = self.repo.get_by_slug(slug)
        if not category:
            raise NotFound("Category")
        return self._to_dict(category)

    @db_errors("read", "category")
    def list_categories(self, filters: CategoryFilters) -> List[Dict[str, Any]]:
        rows = self.repo.list_categories(filters.is_active, filters.parent_id, filters.root_only)
        return [self._to_dict(c) for c in rows]

    @db_errors("read", "category")
    def get_hierarchy(self) -> List[Dict[str, Any]]:
        """Active roots, each with its active children, from a single query."""
        rows = self.repo.list_categories(is_active=True)

        roots = [dict(self._to_dict(c), children=[]) for c in rows if c.parent_id is None]
        by_id = {r["id"]: r for r in roots}
        for c in rows:
            if c.parent_id is not None and c.parent_id in by_id:
                by_id[c.parent_id]["children"].append(self._to_dict(c))
        return roots
