from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.domain.enums import ProductStatus


def _now():
    return datetime.now(timezone.utc)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)

    status = Column(String(20), nullable=False, default=ProductStatus.DRAFT.value)
    inventory_quantity = Column(Integer, nullable=False, default=0)
    allow_backorder = Column(Boolean, nullable=False, default=False)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    category = relationship("CategoryModel")

    __table_args__ = (
        CheckConstraint(
            "inventory_quantity >= 0 OR allow_backorder = true",
            name="inventory_non_negative",
        ),
    )

    @property
    def is_purchasable(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value
