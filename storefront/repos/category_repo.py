# storefront/repos/category_repo.py
from typing import List

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel


class CategoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_category(self, category_id: int) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def get_by_slug(self, slug: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel).where(CategoryModel.slug == slug)
        ).scalar_one_or_none()

    def find_by_name_or_slug(self, name: str | None, slug: str | None,
                             exclude_id: int | None = None) -> CategoryModel | None:
        conditions = []
        if name:
            conditions.append(CategoryModel.name == name)
        if slug:
            conditions.append(CategoryModel.slug == slug)
        if not conditions:
            return None

        stmt = select(CategoryModel).where(or_(*conditions))
        if exclude_id is not None:
            stmt = stmt.where(CategoryModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).scalar_one_or_none()

    def slug_exists(self, slug: str, exclude_id: int | None = None) -> bool:
        stmt = select(CategoryModel.id).where(CategoryModel.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(CategoryModel.id != exclude_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def has_children(self, category_id: int) -> bool:
        stmt = select(CategoryModel.id).where(CategoryModel.parent_id == category_id)
        return self.db.execute(stmt.limit(1)).first() is not None

    def list_categories(self, is_active: bool | None = None, parent_id: int | None = None,
                        root_only: bool = False) -> List[CategoryModel]:
        stmt = select(CategoryModel)
        if is_active is not None:
            stmt = stmt.where(CategoryModel.is_active == is_active)
        if root_only:
            stmt = stmt.where(CategoryModel.parent_id.is_(None))
        elif parent_id is not None:
            stmt = stmt.where(CategoryModel.parent_id == parent_id)
        return list(self.db.execute(stmt.order_by(CategoryModel.name)).scalars())

    def add(self, category: CategoryModel) -> CategoryModel:
        self.db.add(category)
        self.db.flush()
        return category
