# every model is imported here so Base.metadata knows all tables before create_all

from storefront.data.models.user import UserModel
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.shipping_address import ShippingAddressModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.order_status_history import OrderStatusHistoryModel

__all__ = [
    "UserModel",
    "CategoryModel",
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "ShippingAddressModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusHistoryModel",
]
