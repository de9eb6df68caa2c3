# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from storefront.domain.enums import OrderStatus, ProductStatus, Role, ShippingMethod
from storefront.utils.settings import MAX_CART_ITEM_QUANTITY

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard success envelope."""

    success: bool = True
    message: str
    data: Optional[T] = None


def ok(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": data}


# ---------------------------------------------------------------- users

class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    role: Role = Role.CUSTOMER


class UserRead(BaseModel):
    id: int
    email: str
    name: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- categories

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[int] = Field(default=None, gt=0)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name must not be blank")
        return v


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class CategoryRead(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryNode(CategoryRead):
    """Root category with its direct children."""

    children: List[CategoryRead] = []


# ---------------------------------------------------------------- products

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    status: ProductStatus = ProductStatus.DRAFT
    inventory_quantity: int = 0
    allow_backorder: bool = False
    category_id: int = Field(..., gt=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    status: Optional[ProductStatus] = None
    inventory_quantity: Optional[int] = None
    allow_backorder: Optional[bool] = None
    category_id: Optional[int] = Field(default=None, gt=0)


class ProductRead(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    price: Decimal
    status: ProductStatus
    inventory_quantity: int
    allow_backorder: bool
    category_id: int

    model_config = ConfigDict(from_attributes=True)


class ProductStatusBulkUpdate(BaseModel):
    product_ids: List[int] = Field(..., min_length=1, max_length=100)
    status: ProductStatus


class BulkUpdateResult(BaseModel):
    updated: int


# ---------------------------------------------------------------- inventory / pricing

class LineItemIn(BaseModel):
    """Requested (product, quantity, variant) line."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0, le=MAX_CART_ITEM_QUANTITY)
    product_variant: Optional[Dict[str, Any]] = None


class AvailabilityRequest(BaseModel):
    items: List[LineItemIn] = Field(..., min_length=1)


class ItemAvailability(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    requested_quantity: int
    available_quantity: int
    allow_backorder: bool
    available: bool
    reason: Optional[str] = None


class AvailabilityReport(BaseModel):
    is_valid: bool
    items: List[ItemAvailability]


class TotalsRequest(BaseModel):
    items: List[LineItemIn] = Field(..., min_length=1)
    shipping_method: ShippingMethod = ShippingMethod.STANDARD


class OrderTotals(BaseModel):
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


# ---------------------------------------------------------------- cart

class CartItemIn(BaseModel):
    product_id: int = Field(..., gt=0, description="Product to add")
    quantity: int = Field(..., ge=1, le=MAX_CART_ITEM_QUANTITY)
    product_variant: Optional[Dict[str, Any]] = Field(
        default=None, description="Open-ended attributes such as size, color or material"
    )


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=MAX_CART_ITEM_QUANTITY)


class CartProductOut(BaseModel):
    id: int
    name: str
    slug: str
    price: Decimal
    status: ProductStatus
    inventory_quantity: int
    allow_backorder: bool

    model_config = ConfigDict(from_attributes=True)


class CartItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    product_variant: Optional[Dict[str, Any]] = None
    added_at: datetime
    updated_at: datetime
    product: CartProductOut

    model_config = ConfigDict(from_attributes=True)


class CartSummary(BaseModel):
    total_items: int
    total_quantity: int
    subtotal: Decimal
    estimated_tax: Decimal
    estimated_total: Decimal


class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]
    summary: CartSummary
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------- addresses

class AddressCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    company: Optional[str] = Field(default=None, max_length=100)
    address_line_1: str = Field(..., min_length=1, max_length=255)
    address_line_2: Optional[str] = Field(default=None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    is_default: Optional[bool] = None


class AddressUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    company: Optional[str] = Field(default=None, max_length=100)
    address_line_1: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address_line_2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    country: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    is_default: Optional[bool] = None


class AddressRead(BaseModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    company: Optional[str] = None
    address_line_1: str
    address_line_2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    phone_number: Optional[str] = None
    is_default: bool

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- orders

class OrderCreate(BaseModel):
    """Checkout request. Without `items` the caller's cart is checked out."""

    shipping_address_id: int = Field(..., gt=0)
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    items: Optional[List[LineItemIn]] = Field(default=None, min_length=1)
    customer_notes: Optional[str] = Field(default=None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    comment: Optional[str] = Field(default=None, max_length=1000)
    is_customer_visible: bool = True
    tracking_number: Optional[str] = Field(default=None, max_length=100)


class OrderCancel(BaseModel):
    reason: str = Field(..., max_length=1000)

    @field_validator("reason")
    @classmethod
    def _reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Cancellation reason is required")
        return v


class PaymentConfirm(BaseModel):
    comment: Optional[str] = Field(default=None, max_length=1000)
    is_customer_visible: bool = True


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    product_slug: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product_variant: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryOut(BaseModel):
    id: int
    previous_status: Optional[OrderStatus] = None
    new_status: OrderStatus
    comment: Optional[str] = None
    changed_by: Optional[int] = None
    is_customer_visible: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: OrderStatus
    payment_confirmed: bool
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    shipping_method: ShippingMethod
    shipping_address_id: int
    tracking_number: Optional[str] = None
    customer_notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class OrderPage(BaseModel):
    items: List[OrderOut]
    pagination: Pagination


class OrderStatistics(BaseModel):
    total_orders: int
    by_status: Dict[str, int]
    pending_orders: int
    completed_orders: int
    cancelled_orders: int
    total_revenue: Decimal
