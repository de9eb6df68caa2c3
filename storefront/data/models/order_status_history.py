from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderStatusHistoryModel(Base):
    """Append-only, rows are never updated or deleted."""

    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    previous_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    comment = Column(Text, nullable=True)
    changed_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    is_customer_visible = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="history")
