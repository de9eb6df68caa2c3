# storefront/api/routers/users.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_principal, get_user_service, require_admin
from storefront.domain.schemas import ApiResponse, UserCreate, UserRead, ok
from storefront.security import Principal
from storefront.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=ApiResponse[UserRead], status_code=201)
def create_user(
    payload: UserCreate,
    _: Principal = Depends(require_admin),
    svc: UserService = Depends(get_user_service),
):
    return ok("User created successfully", svc.create_user(payload))


@router.get("/me", response_model=ApiResponse[UserRead])
def get_me(
    principal: Principal = Depends(get_principal),
    svc: UserService = Depends(get_user_service),
):
    return ok("User retrieved successfully", svc.get_user(principal.user_id))
