# storefront/security.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from storefront.domain.enums import Role
from storefront.domain.errors import Unauthorized
from storefront.utils import settings


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, taken from the access token."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def create_access_token(user_id: int, role: Role | str, expires_in: int | None = None) -> str:
    exp = datetime.now(timezone.utc) + timedelta(
        seconds=expires_in if expires_in is not None else settings.ACCESS_TOKEN_EXPIRES_SECONDS
    )
    payload = {"sub": str(user_id), "role": Role(role).value, "exp": exp, "type": "access"}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.PyJWTError:
        raise Unauthorized("Invalid token")

    if payload.get("type") != "access":
        raise Unauthorized("Invalid access token")

    try:
        return Principal(user_id=int(payload["sub"]), role=Role(payload.get("role")))
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid token")
