# storefront/repos/address_repo.py
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.shipping_address import ShippingAddressModel


class AddressRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_address(self, address_id: int) -> ShippingAddressModel | None:
        return self.db.get(ShippingAddressModel, address_id)

    def get_user_address(self, user_id: int, address_id: int) -> ShippingAddressModel | None:
        return self.db.execute(
            select(ShippingAddressModel).where(
                ShippingAddressModel.id == address_id,
                ShippingAddressModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def list_for_user(self, user_id: int) -> List[ShippingAddressModel]:
        return list(
            self.db.execute(
                select(ShippingAddressModel)
                .where(ShippingAddressModel.user_id == user_id)
                .order_by(ShippingAddressModel.is_default.desc(), ShippingAddressModel.created_at.desc())
            ).scalars()
        )

    def has_any(self, user_id: int) -> bool:
        stmt = select(ShippingAddressModel.id).where(ShippingAddressModel.user_id == user_id).limit(1)
        return self.db.execute(stmt).first() is not None

    def clear_default(self, user_id: int) -> None:
        self.db.execute(
            update(ShippingAddressModel)
            .where(ShippingAddressModel.user_id == user_id, ShippingAddressModel.is_default.is_(True))
            .values(is_default=False, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )

    def is_in_use(self, address_id: int) -> bool:
        stmt = select(OrderModel.id).where(OrderModel.shipping_address_id == address_id).limit(1)
        return self.db.execute(stmt).first() is not None

    def add(self, address: ShippingAddressModel) -> ShippingAddressModel:
        self.db.add(address)
        self.db.flush()
        return address

    def delete(self, address: ShippingAddressModel) -> None:
        self.db.delete(address)
        self.db.flush()
