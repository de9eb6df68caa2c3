# storefront/api/routers/categories.py
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_category_service, require_admin
from storefront.domain.filters import CategoryFilters
from storefront.domain.schemas import (
    ApiResponse,
    CategoryCreate,
    CategoryNode,
    CategoryRead,
    CategoryUpdate,
    ok,
)
from storefront.security import Principal
from storefront.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=ApiResponse[List[CategoryRead]])
def list_categories(
    filters: Annotated[CategoryFilters, Query()],
    svc: CategoryService = Depends(get_category_service),
):
    return ok("Categories retrieved successfully", svc.list_categories(filters))


@router.get("/hierarchy", response_model=ApiResponse[List[CategoryNode]])
def get_hierarchy(svc: CategoryService = Depends(get_category_service)):
    return ok("Category hierarchy retrieved successfully", svc.get_hierarchy())


@router.get("/slug/{slug}", response_model=ApiResponse[CategoryRead])
def get_category_by_slug(slug: str, svc: CategoryService = Depends(get_category_service)):
    return ok("Category retrieved successfully", svc.get_by_slug(slug))


@router.get("/{category_id}", response_model=ApiResponse[CategoryRead])
def get_category(category_id: int, svc: CategoryService = Depends(get_category_service)):
    return ok("Category retrieved successfully", svc.get_category(category_id))


@router.post("", response_model=ApiResponse[CategoryRead], status_code=201)
def create_category(
    payload: CategoryCreate,
    _: Principal = Depends(require_admin),
    svc: CategoryService = Depends(get_category_service),
):
    return ok("Category created successfully", svc.create_category(payload))


@router.patch("/{category_id}", response_model=ApiResponse[CategoryRead])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    _: Principal = Depends(require_admin),
    svc: CategoryService = Depends(get_category_service),
):
    return ok("Category updated successfully", svc.update_category(category_id, payload))


@router.delete("/{category_id}", response_model=ApiResponse[CategoryRead])
def delete_category(
    category_id: int,
    _: Principal = Depends(require_admin),
    svc: CategoryService = Depends(get_category_service),
):
    return ok("Category deleted successfully", svc.delete_category(category_id))
