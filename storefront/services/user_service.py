from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.database import unit_of_work
from storefront.data.models.user import UserModel
from storefront.domain.errors import Conflict, NotFound
from storefront.domain.schemas import UserCreate
from storefront.repos.user_repo import UserRepo
from storefront.services.notification_service import NotificationService
from storefront.utils.db_errors import db_errors
from storefront.utils.logging import get_logger


class UserService:
    def __init__(self, db: Session, notifier: NotificationService | None = None, log=None):
        self.db = db
        self.repo = UserRepo(db)
        self.log = log or get_logger(__name__)
        self.notifier = notifier or NotificationService(self.log)

    @staticmethod
    def _to_dict(user: UserModel) -> Dict[str, Any]:
        return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}

    @db_errors("create", "user")
    def create_user(self, payload: UserCreate) -> Dict[str, Any]:
        email = payload.email.lower()

        with unit_of_work(self.db):
            if self.repo.get_by_email(email):
                raise Conflict("User with this email already exists")
            user = self.repo.create_user(
                UserModel(email=email, name=payload.name.strip(), role=payload.role.value)
            )

        self.log.info(f"User {user.id} created with role {user.role}")
        self.notifier.user_registered(user.id, user.email)
        return self._to_dict(user)

    @db_errors("read", "user")
    def get_user(self, user_id: int) -> Dict[str, Any]:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound("User")
        return self._to_dict(user)
