# storefront/domain/filters.py
"""Typed query filters, validated at the API boundary before reaching services."""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storefront.domain.enums import OrderStatus, ProductStatus, ShippingMethod


class OrderFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[OrderStatus] = None
    order_number: Optional[str] = Field(default=None, max_length=50)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    shipping_method: Optional[ShippingMethod] = None
    sort_by: Literal["created_at", "updated_at", "total_amount", "order_number"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @model_validator(mode="after")
    def _check_ranges(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        if self.min_amount is not None and self.max_amount is not None and self.min_amount > self.max_amount:
            raise ValueError("min_amount must not exceed max_amount")
        return self


class CategoryFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: Optional[bool] = None
    parent_id: Optional[int] = Field(default=None, gt=0)
    # only categories without a parent; takes precedence over parent_id
    root_only: bool = False


class ProductFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    q: Optional[str] = Field(default=None, max_length=100)
    category_id: Optional[int] = Field(default=None, gt=0)
    status: Optional[ProductStatus] = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
