# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_cart_service, get_principal
from storefront.domain.schemas import ApiResponse, CartItemIn, CartItemUpdate, CartOut, CartSummary, ok
from storefront.security import Principal
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_cart_service),
):
    return ok("Cart retrieved successfully", svc.get_cart(principal.user_id))


@router.get("/summary", response_model=ApiResponse[CartSummary])
def get_cart_summary(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_cart_service),
):
    return ok("Cart summary retrieved successfully", svc.get_summary(principal.user_id))


@router.post("/items", response_model=ApiResponse[CartOut], status_code=201)
def add_item(
    payload: CartItemIn,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.add_item(principal.user_id, payload.product_id, payload.quantity, payload.product_variant)
    return ok("Item added to cart successfully", cart)


@router.patch("/items/{item_id}", response_model=ApiResponse[CartOut])
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_cart_service),
):
    return ok("Cart item updated successfully", svc.update_item(principal.user_id, item_id, payload.quantity))


@router.delete("/items/{item_id}", response_model=ApiResponse[CartOut])
def remove_item(
    item_id: int,
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_cart_service),
):
    return ok("Item removed from cart successfully", svc.remove_item(principal.user_id, item_id))


@router.delete("", response_model=ApiResponse[CartOut])
def clear_cart(
    principal: Principal = Depends(get_principal),
    svc: CartService = Depends(get_cart_service),
):
    return ok("Cart cleared successfully", svc.clear(principal.user_id))
