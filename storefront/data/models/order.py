from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.domain.enums import OrderStatus, ShippingMethod


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(50), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_confirmed = Column(Boolean, nullable=False, default=False)

    # fixed at creation, total = subtotal + tax + shipping - discount
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)

    shipping_method = Column(String(20), nullable=False, default=ShippingMethod.STANDARD.value)
    shipping_address_id = Column(
        Integer, ForeignKey("shipping_addresses.id", ondelete="RESTRICT"), nullable=False
    )
    tracking_number = Column(String(100), nullable=True)
    customer_notes = Column(Text, nullable=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    items = relationship("OrderItemModel", back_populates="order", order_by="OrderItemModel.id")
    history = relationship(
        "OrderStatusHistoryModel",
        back_populates="order",
        order_by="OrderStatusHistoryModel.id",
    )
    shipping_address = relationship("ShippingAddressModel")
