#control_panel\registry\mail_service.py

"""Mail service - virtual mailboxes on mail-enabled domains."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from control_panel.core.access import Action, authorize
from control_panel.core.errors import ConflictError, NotFoundError, PanelError, ValidationError
from control_panel.core.security import hash_password
from control_panel.host.gateway import HostOperationsGateway
from control_panel.host.mail_config import MailConfigWriter
from control_panel.infrastructure.postgres.repository import DomainRepository, MailAccountRepository
from control_panel.registry.models import MailAccount

logger = logging.getLogger(__name__)


USERNAME_RE = re.compile(r"^[a-z0-9][a-z0-9._+-]{0,63}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8

UPDATABLE_FIELDS = {
    "display_name", "is_active", "quota", "forwarding_enabled", "forwarding_address",
    "keep_copy", "auto_reply_enabled", "auto_reply_subject", "auto_reply_message", "aliases",
}


class MailService:
    """Mailbox CRUD; config files are kept in sync with the registry."""

    def __init__(
        self,
        mail_repo: MailAccountRepository,
        domain_repo: DomainRepository,
        mail_config: MailConfigWriter,
        gateway: HostOperationsGateway,
        mail_root: str,
        default_quota: int,
    ):
        self._mail_repo = mail_repo
        self._domain_repo = domain_repo
        self._mail_config = mail_config
        self._gateway = gateway
        self._mail_root = mail_root.rstrip("/")
        self._default_quota = default_quota

    def list_accounts(self, subject) -> List[MailAccount]:
        return self._mail_repo.list(owner_id=None if subject.is_admin else subject.user_id)

    def list_by_domain(self, subject, domain_id: UUID) -> List[MailAccount]:
        domain = self._domain_repo.get(domain_id)
        if not domain:
            raise NotFoundError(f"Domain {domain_id} not found")
        authorize(subject, Action.READ, domain)
        return self._mail_repo.list(domain_id=domain_id)

    def get_account(self, subject, account_id: UUID) -> MailAccount:
        account = self._mail_repo.get(account_id)
        if not account:
            raise NotFoundError(f"Mail account {account_id} not found")
        authorize(subject, Action.READ, account)
        return account

    def create_account(
        self,
        subject,
        domain_id: UUID,
        username: str,
        password: str,
        display_name: Optional[str] = None,
        quota: Optional[int] = None,
    ) -> MailAccount:
        """
        Create username@domain.

        Raises:
            ValidationError: domain does not have mail enabled, bad username/password
            ConflictError: address already exists
            UpstreamError: mail configuration files could not be written
        """
        domain = self._domain_repo.get(domain_id)
        if not domain:
            raise NotFoundError(f"Domain {domain_id} not found")
        authorize(subject, Action.WRITE, domain)

        if not domain.mail_enabled:
            raise ValidationError(f"Mail is not enabled for {domain.name}")

        username = (username or "").strip().lower()
        if not USERNAME_RE.match(username):
            raise ValidationError(f"Invalid mailbox name '{username}'")
        self._validate_password(password)

        email = f"{username}@{domain.name}"
        if self._mail_repo.get_by_email(email):
            raise ConflictError(f"Mail account {email} already exists")

        account = MailAccount(
            username=username,
            domain_id=domain.domain_id,
            domain_name=domain.name,
            owner_id=domain.owner_id,
            password_hash=hash_password(password),
            display_name=display_name,
            quota=quota or self._default_quota,
        )
        self._mail_config.add_mailbox(account.email, account.maildir, account.password_hash)
        try:
            self._mail_repo.create(account)
        except PanelError:
            self._mail_config.remove_mailbox(account.email)
            raise

        logger.info(f"[mail] {account.email} created by {subject.email}")
        return account

    def update_account(self, subject, account_id: UUID, changes: Dict[str, Any]) -> MailAccount:
        account = self.get_account(subject, account_id)
        authorize(subject, Action.WRITE, account)

        for attr, value in changes.items():
            if attr in UPDATABLE_FIELDS and value is not None:
                setattr(account, attr, value)

        if account.forwarding_enabled and not (
            account.forwarding_address and EMAIL_RE.match(account.forwarding_address)
        ):
            raise ValidationError("A valid forwarding address is required when forwarding is enabled")
        if account.quota <= 0:
            raise ValidationError("Quota must be positive")
        account.aliases = [alias.strip().lower() for alias in account.aliases if alias.strip()]

        account.updated_at = datetime.now(timezone.utc)
        self._mail_repo.update(account)
        return account

    def change_password(self, subject, account_id: UUID, password: str) -> None:
        account = self.get_account(subject, account_id)
        authorize(subject, Action.WRITE, account)
        self._validate_password(password)

        account.password_hash = hash_password(password)
        account.updated_at = datetime.now(timezone.utc)
        self._mail_config.set_password(account.email, account.password_hash)
        self._mail_repo.update(account)
        logger.info(f"[mail] password changed for {account.email}")

    def delete_account(self, subject, account_id: UUID) -> None:
        account = self.get_account(subject, account_id)
        authorize(subject, Action.WRITE, account)

        self._mail_config.remove_mailbox(account.email)
        self._mail_repo.delete(account.account_id)
        logger.info(f"[mail] {account.email} deleted by {subject.email}")

    def account_stats(self, subject, account_id: UUID) -> Dict[str, Any]:
        """Disk usage of the maildir against its quota."""
        account = self.get_account(subject, account_id)

        used = self._gateway.mailbox_usage(f"{self._mail_root}/{account.domain_name}/{account.username}")
        if used != account.used_space:
            account.used_space = used
            self._mail_repo.update(account)

        return {
            "email": account.email,
            "quota": account.quota,
            "used": used,
            "percent": round(used / account.quota * 100, 2) if account.quota else 0.0,
        }

    @staticmethod
    def _validate_password(password: str) -> None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
