#control_panel\registry\domain_service.py

"""Domain service - hosted domains, DNS records, ownership verification and SSL."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from control_panel.config import PanelSettings
from control_panel.core.access import Action, authorize
from control_panel.core.errors import ConflictError, NotFoundError, ValidationError
from control_panel.host.dns_lookup import TxtResolver
from control_panel.host.gateway import HostOperationsGateway
from control_panel.host.mail_config import MailConfigWriter
from control_panel.infrastructure.postgres.repository import DomainRepository, MailAccountRepository
from control_panel.registry.models import DNS_RECORD_TYPES, DNSRecord, DomainRecord, DomainSettings

logger = logging.getLogger(__name__)


DOMAIN_NAME_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z][a-z0-9-]{0,62}$")
SPF_RECORD = "v=spf1 mx a ~all"


class DomainService:
    """Domain lifecycle. Owners manage their own domains, admins manage all."""

    def __init__(
        self,
        domain_repo: DomainRepository,
        mail_repo: MailAccountRepository,
        gateway: HostOperationsGateway,
        mail_config: MailConfigWriter,
        txt_resolver: TxtResolver,
        settings: PanelSettings,
    ):
        self._domain_repo = domain_repo
        self._mail_repo = mail_repo
        self._gateway = gateway
        self._mail_config = mail_config
        self._txt_resolver = txt_resolver
        self._settings = settings

    # ============================================
    # CRUD
    # ============================================

    def list_domains(self, subject) -> List[DomainRecord]:
        return self._domain_repo.list(owner_id=None if subject.is_admin else subject.user_id)

    def get_domain(self, subject, domain_id: UUID) -> DomainRecord:
        domain = self._require_domain(domain_id)
        authorize(subject, Action.READ, domain)
        return domain

    def create_domain(self, subject, name: str) -> DomainRecord:
        """
        Register a domain for subject.

        The name is lower-cased and must be globally unique. A random
        verification token is generated and default A / MX records are added.
        """
        name = (name or "").strip().lower().rstrip(".")
        if not DOMAIN_NAME_RE.match(name):
            raise ValidationError(f"Invalid domain name '{name}'")
        if self._domain_repo.get_by_name(name):
            raise ConflictError(f"Domain {name} is already registered")

        domain = DomainRecord(
            name=name,
            owner_id=subject.user_id,
            verification_token=uuid4().hex,
            dns_records=[
                DNSRecord(record_type="A", name="@", value=self._settings.server_ip, ttl=3600),
                DNSRecord(record_type="MX", name="@", value=f"mail.{name}", ttl=3600, priority=10),
            ],
        )
        self._domain_repo.create(domain)
        logger.info(f"[domains] {name} added by {subject.email}")
        return domain

    def verification_record(self, domain: DomainRecord) -> Dict[str, str]:
        """TXT record the owner must publish to prove control of the domain."""
        return {
            "type": "TXT",
            "name": self._settings.verification_prefix,
            "value": domain.verification_token,
        }

    def update_domain(self, subject, domain_id: UUID, changes: Dict[str, Any]) -> DomainRecord:
        """Only is_active, mail_enabled and settings may change."""
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        if changes.get("is_active") is not None:
            domain.is_active = bool(changes["is_active"])
        if changes.get("mail_enabled") is not None:
            domain.mail_enabled = bool(changes["mail_enabled"])
        if changes.get("settings") is not None:
            merged = domain.settings.to_dict()
            merged.update({k: v for k, v in changes["settings"].items() if v is not None})
            domain.settings = DomainSettings.from_dict(merged)

        self._touch_and_save(domain)
        return domain

    def delete_domain(self, subject, domain_id: UUID) -> None:
        """Delete the domain together with its mailboxes."""
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        for account in self._mail_repo.list(domain_id=domain.domain_id):
            self._mail_config.remove_mailbox(account.email)
            self._mail_repo.delete(account.account_id)
        if domain.mail_enabled:
            self._mail_config.remove_domain(domain.name)

        self._domain_repo.delete(domain.domain_id)
        logger.info(f"[domains] {domain.name} deleted by {subject.email}")

    # ============================================
    # DNS RECORDS
    # ============================================

    def add_dns_record(self, subject, domain_id: UUID, record: DNSRecord) -> DomainRecord:
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)
        self._validate_record(record)

        domain.dns_records.append(record)
        self._touch_and_save(domain)
        logger.info(f"[domains] DNS {record.record_type} {record.name} -> {record.value} for {domain.name}")
        return domain

    def update_dns_record(
        self,
        subject,
        domain_id: UUID,
        record_id: UUID,
        changes: Dict[str, Any],
    ) -> DomainRecord:
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        record = domain.find_record(record_id)
        if record is None:
            raise NotFoundError(f"DNS record {record_id} not found")

        for attr in ("record_type", "name", "value", "ttl", "priority"):
            if changes.get(attr) is not None:
                setattr(record, attr, changes[attr])
        self._validate_record(record)

        self._touch_and_save(domain)
        return domain

    def delete_dns_record(self, subject, domain_id: UUID, record_id: UUID) -> DomainRecord:
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        if domain.find_record(record_id) is None:
            raise NotFoundError(f"DNS record {record_id} not found")
        domain.dns_records = [r for r in domain.dns_records if r.record_id != record_id]

        self._touch_and_save(domain)
        return domain

    # ============================================
    # VERIFICATION
    # ============================================

    def verify_domain(self, subject, domain_id: UUID) -> DomainRecord:
        """
        Check the TXT record at <prefix>.<domain> against the stored token.

        Matching is exact and case-sensitive; the token does not expire.

        Raises:
            ValidationError: no TXT value equals the token
        """
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        lookup_name = f"{self._settings.verification_prefix}.{domain.name}"
        values = self._txt_resolver.resolve_txt(lookup_name)

        if domain.verification_token not in values:
            logger.info(f"[domains] verification failed for {domain.name}")
            raise ValidationError(
                "Verification record not found",
                details=f"Add a TXT record '{self._settings.verification_prefix}' "
                        f"with value '{domain.verification_token}' and try again",
            )

        domain.is_verified = True
        domain.verified_at = datetime.now(timezone.utc)
        self._touch_and_save(domain)
        logger.info(f"[domains] {domain.name} verified")
        return domain

    # ============================================
    # SSL
    # ============================================

    def issue_ssl(self, subject, domain_id: UUID) -> DomainRecord:
        """Obtain a certificate; refused before any command runs if the domain is unverified."""
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        if not domain.is_verified:
            raise ValidationError("Domain must be verified before requesting SSL")

        # Non-zero exit raises UpstreamError; nothing below runs in that case
        self._gateway.issue_certificate(domain.name)

        live_dir = f"{self._settings.letsencrypt_live_dir}/{domain.name}"
        domain.ssl_enabled = True
        domain.ssl_cert_path = f"{live_dir}/fullchain.pem"
        domain.ssl_key_path = f"{live_dir}/privkey.pem"
        domain.ssl_expires_at = datetime.now(timezone.utc) + timedelta(days=self._settings.ssl_valid_days)
        self._touch_and_save(domain)

        logger.info(f"[domains] SSL issued for {domain.name}")
        return domain

    def renew_ssl(self, subject, domain_id: UUID) -> DomainRecord:
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        if not domain.ssl_enabled:
            raise ValidationError("SSL is not enabled for this domain")

        self._gateway.renew_certificate(domain.name)

        domain.ssl_expires_at = datetime.now(timezone.utc) + timedelta(days=self._settings.ssl_valid_days)
        self._touch_and_save(domain)
        logger.info(f"[domains] SSL renewed for {domain.name}")
        return domain

    # ============================================
    # MAIL
    # ============================================

    def enable_mail(self, subject, domain_id: UUID) -> Dict[str, Any]:
        """Turn on mail hosting: SPF, MX (if missing) and a postfix virtual domain."""
        domain = self.get_domain(subject, domain_id)
        authorize(subject, Action.WRITE, domain)

        domain.mail_enabled = True
        domain.settings.spf_record = SPF_RECORD
        if not any(r.record_type == "MX" for r in domain.dns_records):
            domain.dns_records.append(
                DNSRecord(record_type="MX", name="@", value=f"mail.{domain.name}", ttl=3600, priority=10)
            )
        self._mail_config.add_domain(domain.name)
        self._touch_and_save(domain)

        logger.info(f"[domains] mail enabled for {domain.name}")
        return {
            "domain": domain,
            "dns_records": [
                {"type": "MX", "name": "@", "value": f"mail.{domain.name}", "priority": 10},
                {"type": "TXT", "name": "@", "value": SPF_RECORD},
                {"type": "A", "name": "mail", "value": self._settings.server_ip},
            ],
        }

    # ============================================
    # HELPERS
    # ============================================

    def _require_domain(self, domain_id: UUID) -> DomainRecord:
        domain = self._domain_repo.get(domain_id)
        if not domain:
            raise NotFoundError(f"Domain {domain_id} not found")
        return domain

    @staticmethod
    def _validate_record(record: DNSRecord) -> None:
        record.record_type = (record.record_type or "").upper()
        if record.record_type not in DNS_RECORD_TYPES:
            raise ValidationError(
                f"Invalid record type '{record.record_type}' (allowed: {', '.join(sorted(DNS_RECORD_TYPES))})"
            )
        if not record.name or not record.value:
            raise ValidationError("Record name and value are required")
        if record.ttl < 60:
            raise ValidationError("TTL must be at least 60 seconds")
        if record.record_type in ("MX", "SRV") and record.priority is None:
            record.priority = 10

    def _touch_and_save(self, domain: DomainRecord) -> None:
        domain.updated_at = datetime.now(timezone.utc)
        self._domain_repo.update(domain)
