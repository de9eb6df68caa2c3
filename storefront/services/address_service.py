# storefront/services/address_service.py
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.database import unit_of_work
from storefront.data.models.shipping_address import ShippingAddressModel
from storefront.domain.errors import Conflict, NotFound
from storefront.domain.schemas import AddressCreate, AddressUpdate
from storefront.repos.address_repo import AddressRepo
from storefront.utils.db_errors import db_errors
from storefront.utils.logging import get_logger

_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "postal_code",
    "country",
    "phone_number",
)


class AddressService:
    """Shipping addresses of one user. At most one of them is the default."""

    def __init__(self, db: Session, log=None):
        self.db = db
        self.repo = AddressRepo(db)
        self.log = log or get_logger(__name__)

    @staticmethod
    def _to_dict(address: ShippingAddressModel) -> Dict[str, Any]:
        data = {field: getattr(address, field) for field in _FIELDS}
        data.update(id=address.id, user_id=address.user_id, is_default=address.is_default)
        return data

    def _owned(self, user_id: int, address_id: int) -> ShippingAddressModel:
        address = self.repo.get_user_address(user_id, address_id)
        if not address:
            raise NotFound("Shipping address")
        return address

    @db_errors("create", "shipping address")
    def create_address(self, user_id: int, payload: AddressCreate) -> Dict[str, Any]:
        with unit_of_work(self.db):
            # a user's first address is the default one
            is_default = bool(payload.is_default) or not self.repo.has_any(user_id)
            if is_default:
                self.repo.clear_default(user_id)

            address = self.repo.add(
                ShippingAddressModel(
                    user_id=user_id,
                    is_default=is_default,
                    **payload.model_dump(include=set(_FIELDS)),
                )
            )

        self.log.info(f"Address {address.id} added for user {user_id}")
        return self._to_dict(address)

    @db_errors("read", "shipping address")
    def list_addresses(self, user_id: int) -> List[Dict[str, Any]]:
        return [self._to_dict(a) for a in self.repo.list_for_user(user_id)]

    @db_errors("read", "shipping address")
    def get_address(self, user_id: int, address_id: int) -> Dict[str, Any]:
        return self._to_dict(self._owned(user_id, address_id))

    @db_errors("update", "shipping address")
    def update_address(self, user_id: int, address_id: int, payload: AddressUpdate) -> Dict[str, Any]:
        changes = payload.model_dump(exclude_unset=True)

        with unit_of_work(self.db):
            address = self._owned(user_id, address_id)
            if changes.pop("is_default", None):
                self.repo.clear_default(user_id)
                address.is_default = True
            for field, value in changes.items():
                if field in _FIELDS:
                    setattr(address, field, value)
            address.updated_at = datetime.now(timezone.utc)
            self.db.flush()

        return self._to_dict(address)

    @db_errors("update", "shipping address")
    def set_default(self, user_id: int, address_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            address = self._owned(user_id, address_id)
            self.repo.clear_default(user_id)
            address.is_default = True
            address.updated_at = datetime.now(timezone.utc)
            self.db.flush()

        self.log.info(f"Address {address.id} is now the default for user {user_id}")
        return self._to_dict(address)

    @db_errors("delete", "shipping address")
    def delete_address(self, user_id: int, address_id: int) -> None:
        with unit_of_work(self.db):
            address = self._owned(user_id, address_id)
            if self.repo.is_in_use(address.id):
                raise Conflict("Cannot delete address that is being used in existing orders")
            self.repo.delete(address)

        self.log.info(f"Address {address_id} deleted for user {user_id}")
