# storefront/api/routers/addresses.py
from typing import List

from fastapi import APIRouter, Depends

from storefront.api.deps import get_address_service, get_principal
from storefront.domain.schemas import AddressCreate, AddressRead, AddressUpdate, ApiResponse, ok
from storefront.security import Principal
from storefront.services.address_service import AddressService

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("", response_model=ApiResponse[List[AddressRead]])
def list_addresses(
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_address_service),
):
    return ok("Addresses retrieved successfully", svc.list_addresses(principal.user_id))


@router.post("", response_model=ApiResponse[AddressRead], status_code=201)
def create_address(
    payload: AddressCreate,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_address_service),
):
    return ok("Address created successfully", svc.create_address(principal.user_id, payload))


@router.get("/{address_id}", response_model=ApiResponse[AddressRead])
def get_address(
    address_id: int,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_address_service),
):
    return ok("Address retrieved successfully", svc.get_address(principal.user_id, address_id))


@router.patch("/{address_id}", response_model=ApiResponse[AddressRead])
def update_address(
    address_id: int,
    payload: AddressUpdate,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_address_service),
):
    return ok("Address updated successfully", svc.update_address(principal.user_id, address_id, payload))


@router.post("/{address_id}/default", response_model=ApiResponse[AddressRead])
def set_default_address(
    address_id: int,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_address_service),
):
    return ok("Default address updated", svc.set_default(principal.user_id, address_id))


@router.delete("/{address_id}", response_model=ApiResponse[dict])
def delete_address(
    address_id: int,
    principal: Principal = Depends(get_principal),
    svc: AddressService = Depends(get_address_service),
):
    svc.delete_address(principal.user_id, address_id)
    return ok("Address deleted successfully")
