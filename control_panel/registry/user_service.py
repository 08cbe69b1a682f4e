#control_panel\registry\user_service.py

"""User service - panel accounts and authentication."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from control_panel.core.access import Action, authorize
from control_panel.core.errors import (
    AuthenticationError, ConflictError, NotFoundError, ValidationError
)
from control_panel.core.security import (
    create_access_token, decode_access_token, hash_password, verify_password
)
from control_panel.infrastructure.postgres.repository import UserRepository
from control_panel.registry.models import Role, UserAccount

logger = logging.getLogger(__name__)


MIN_PASSWORD_LENGTH = 6


class UserService:
    """Authentication and user administration."""

    def __init__(self, user_repo: UserRepository):
        self._user_repo = user_repo

    # ============================================
    # AUTHENTICATION
    # ============================================

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        Check credentials and issue a token.

        Returns:
            {"token": str, "user": UserAccount}
        """
        user = self._user_repo.get_by_email((email or "").strip().lower())
        if not user or not verify_password(password or "", user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is disabled")

        user.last_login = datetime.now(timezone.utc)
        self._user_repo.update(user)

        logger.info(f"[auth] login {user.email}")
        return {"token": create_access_token(user.user_id), "user": user}

    def resolve_token(self, token: Optional[str]) -> UserAccount:
        """Return the active user a token belongs to."""
        if not token:
            raise AuthenticationError("Authentication required")

        user = self._user_repo.get(decode_access_token(token))
        if not user or not user.is_active:
            raise AuthenticationError("User not found or disabled")
        return user

    # ============================================
    # SELF SERVICE
    # ============================================

    def change_password(self, subject: UserAccount, current_password: str, new_password: str) -> None:
        if not verify_password(current_password or "", subject.password_hash):
            raise ValidationError("Current password is incorrect")
        self._validate_password(new_password)

        subject.password_hash = hash_password(new_password)
        subject.updated_at = datetime.now(timezone.utc)
        self._user_repo.update(subject)
        logger.info(f"[auth] password changed for {subject.email}")

    def update_profile(self, subject: UserAccount, name: str) -> UserAccount:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")

        subject.name = name
        subject.updated_at = datetime.now(timezone.utc)
        self._user_repo.update(subject)
        return subject

    # ============================================
    # ADMINISTRATION
    # ============================================

    def list_users(self, subject) -> List[UserAccount]:
        authorize(subject, Action.MANAGE)
        return self._user_repo.list()

    def create_user(
        self,
        subject,
        email: str,
        password: str,
        name: str,
        role: Role = Role.USER,
    ) -> UserAccount:
        authorize(subject, Action.MANAGE)
        return self._create(email, password, name, role)

    def delete_user(self, subject, user_id: UUID) -> None:
        authorize(subject, Action.MANAGE)
        if user_id == subject.user_id:
            raise ValidationError("You cannot delete your own account")
        if not self._user_repo.delete(user_id):
            raise NotFoundError(f"User {user_id} not found")
        logger.info(f"[auth] user {user_id} deleted by {subject.email}")

    def get_user(self, user_id: UUID) -> UserAccount:
        user = self._user_repo.get(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def ensure_admin(self, email: str, password: str, name: str) -> Optional[UserAccount]:
        """Create the first admin when the user table is empty."""
        if self._user_repo.count() > 0:
            return None
        user = self._create(email, password, name, Role.ADMIN)
        logger.warning(f"[auth] bootstrap admin {user.email} created, change its password")
        return user

    # ============================================
    # HELPERS
    # ============================================

    def _create(self, email: str, password: str, name: str, role: Role) -> UserAccount:
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError(f"Invalid email '{email}'")
        self._validate_password(password)
        if self._user_repo.get_by_email(email):
            raise ConflictError(f"User {email} already exists")

        user = UserAccount(
            email=email,
            password_hash=hash_password(password),
            name=(name or email.split("@")[0]).strip(),
            role=role,
        )
        self._user_repo.create(user)
        logger.info(f"[auth] user {email} created with role {role.value}")
        return user

    @staticmethod
    def _validate_password(password: str) -> None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
