# storefront/api/deps.py
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import Forbidden, Unauthorized
from storefront.security import Principal, decode_access_token
from storefront.services.address_service import AddressService
from storefront.services.cart_service import CartService
from storefront.services.category_service import CategoryService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.product_service import ProductService
from storefront.services.user_service import UserService

bearer = HTTPBearer(auto_error=False)


def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Principal:
    if not creds:
        raise Unauthorized("Authentication required")
    return decode_access_token(creds.credentials)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise Forbidden("Administrator role required")
    return principal


def get_notifier() -> NotificationService:
    return NotificationService()


def get_user_service(db: Session = Depends(get_db), notifier: NotificationService = Depends(get_notifier)):
    return UserService(db, notifier)


def get_address_service(db: Session = Depends(get_db)):
    return AddressService(db)


def get_cart_service(db: Session = Depends(get_db)):
    return CartService(db)


def get_category_service(db: Session = Depends(get_db)):
    return CategoryService(db)


def get_product_service(db: Session = Depends(get_db)):
    return ProductService(db)


def get_order_service(db: Session = Depends(get_db), notifier: NotificationService = Depends(get_notifier)):
    return OrderService(db, notifier)
