# storefront/api/routers/products.py
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_product_service, require_admin
from storefront.domain.filters import ProductFilters
from storefront.domain.schemas import (
    ApiResponse,
    AvailabilityReport,
    AvailabilityRequest,
    BulkUpdateResult,
    ProductCreate,
    ProductRead,
    ProductStatusBulkUpdate,
    ProductUpdate,
    ok,
)
from storefront.security import Principal
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=ApiResponse[List[ProductRead]])
def list_products(
    filters: Annotated[ProductFilters, Query()],
    svc: ProductService = Depends(get_product_service),
):
    return ok("Products retrieved successfully", svc.list_products(filters))


@router.post("/availability", response_model=ApiResponse[AvailabilityReport])
def check_availability(payload: AvailabilityRequest, svc: ProductService = Depends(get_product_service)):
    return ok("Availability checked", svc.check_availability(payload.items))


@router.get("/low-stock", response_model=ApiResponse[List[ProductRead]])
def list_low_stock(
    threshold: Annotated[int | None, Query(ge=0)] = None,
    _: Principal = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    return ok("Low stock products retrieved successfully", svc.list_low_stock(threshold))


@router.get("/slug/{slug}", response_model=ApiResponse[ProductRead])
def get_product_by_slug(slug: str, svc: ProductService = Depends(get_product_service)):
    return ok("Product retrieved successfully", svc.get_by_slug(slug))


@router.patch("/status", response_model=ApiResponse[BulkUpdateResult])
def bulk_update_status(
    payload: ProductStatusBulkUpdate,
    _: Principal = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    return ok("Product statuses updated successfully", svc.bulk_update_status(payload))


@router.get("/{product_id}", response_model=ApiResponse[ProductRead])
def get_product(product_id: int, svc: ProductService = Depends(get_product_service)):
    return ok("Product retrieved successfully", svc.get_product(product_id))


@router.post("", response_model=ApiResponse[ProductRead], status_code=201)
def create_product(
    payload: ProductCreate,
    _: Principal = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    return ok("Product created successfully", svc.create_product(payload))


@router.patch("/{product_id}", response_model=ApiResponse[ProductRead])
def update_product(
    product_id: int,
    payload: ProductUpdate,
    _: Principal = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    return ok("Product updated successfully", svc.update_product(product_id, payload))


@router.delete("/{product_id}", response_model=ApiResponse[ProductRead])
def delete_product(
    product_id: int,
    _: Principal = Depends(require_admin),
    svc: ProductService = Depends(get_product_service),
):
    return ok("Product discontinued successfully", svc.delete_product(product_id))
