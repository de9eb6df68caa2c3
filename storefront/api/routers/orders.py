# storefront/api/routers/orders.py
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_order_service, get_principal, require_admin
from storefront.domain.filters import OrderFilters
from storefront.domain.schemas import (
    ApiResponse,
    AvailabilityReport,
    AvailabilityRequest,
    OrderCancel,
    OrderCreate,
    OrderOut,
    OrderPage,
    OrderStatistics,
    OrderStatusUpdate,
    OrderTotals,
    PaymentConfirm,
    StatusHistoryOut,
    TotalsRequest,
    ok,
)
from storefront.security import Principal
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=ApiResponse[OrderOut], status_code=201)
def create_order(
    payload: OrderCreate,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    """
    Checkout. Lines come from `items` or, when it is omitted, from the caller's
    cart, which is emptied in the same transaction.
    """
    return ok("Order created successfully", svc.create_order(principal, payload))


@router.get("", response_model=ApiResponse[OrderPage])
def list_orders(
    filters: Annotated[OrderFilters, Query()],
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Orders retrieved successfully", svc.list_orders(principal, filters))


@router.get("/statistics", response_model=ApiResponse[OrderStatistics])
def get_statistics(
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Order statistics retrieved successfully", svc.get_statistics(principal))


@router.post("/check-inventory", response_model=ApiResponse[AvailabilityReport])
def check_inventory(
    payload: AvailabilityRequest,
    _: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Inventory checked", svc.check_inventory(payload.items))


@router.post("/calculate-totals", response_model=ApiResponse[OrderTotals])
def calculate_totals(
    payload: TotalsRequest,
    _: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Order totals calculated", svc.calculate_totals(payload.items, payload.shipping_method))


@router.get("/number/{order_number}", response_model=ApiResponse[OrderOut])
def get_order_by_number(
    order_number: str,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Order retrieved successfully", svc.get_order_by_number(principal, order_number))


@router.get("/{order_id}", response_model=ApiResponse[OrderOut])
def get_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Order retrieved successfully", svc.get_order(principal, order_id))


@router.get("/{order_id}/history", response_model=ApiResponse[List[StatusHistoryOut]])
def get_order_history(
    order_id: int,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Order history retrieved successfully", svc.get_history(principal, order_id))


@router.patch("/{order_id}/status", response_model=ApiResponse[OrderOut])
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    principal: Principal = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_order_status(
        principal,
        order_id,
        payload.status,
        comment=payload.comment,
        is_customer_visible=payload.is_customer_visible,
        tracking_number=payload.tracking_number,
    )
    return ok("Order status updated successfully", order)


@router.post("/{order_id}/cancel", response_model=ApiResponse[OrderOut])
def cancel_order(
    order_id: int,
    payload: OrderCancel,
    principal: Principal = Depends(get_principal),
    svc: OrderService = Depends(get_order_service),
):
    return ok("Order cancelled successfully", svc.cancel_order(principal, order_id, payload.reason))


@router.post("/{order_id}/confirm-payment", response_model=ApiResponse[OrderOut])
def confirm_payment(
    order_id: int,
    payload: PaymentConfirm | None = None,
    principal: Principal = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    payload = payload or PaymentConfirm()
    order = svc.confirm_payment(
        principal, order_id, comment=payload.comment, is_customer_visible=payload.is_customer_visible
    )
    return ok("Payment confirmed successfully", order)
