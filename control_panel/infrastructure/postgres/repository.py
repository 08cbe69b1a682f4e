"""Registry repository implementations."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from control_panel.core.errors import ConflictError, NotFoundError, PanelError
from control_panel.infrastructure.postgres.database import SessionLocal
from control_panel.infrastructure.postgres.models import (
    CatalogEntryORM, InstalledInstanceORM, DomainORM, MailAccountORM, UserORM
)
from control_panel.registry.models import (
    CatalogEntry, InstalledInstance, InstanceLogEntry, LogLevel, DomainRecord, DNSRecord,
    DomainSettings, MailAccount, UserAccount, PortMapping, VolumeMapping, EnvVar
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================
# MAPPING FUNCTIONS
# ============================================

def catalog_entry_to_orm(entry: CatalogEntry) -> CatalogEntryORM:
    """Convert catalog entry domain model to ORM."""
    return CatalogEntryORM(
        entry_id=entry.entry_id,
        slug=entry.slug,
        name=entry.name,
        description=entry.description,
        image=entry.image,
        tag=entry.tag,
        category=entry.category,
        ports=[p.to_dict() for p in entry.ports],
        volumes=[v.to_dict() for v in entry.volumes],
        environment=[e.to_dict() for e in entry.environment],
        min_memory=entry.min_memory,
        min_cpu=entry.min_cpu,
        icon=entry.icon,
        website=entry.website,
        documentation=entry.documentation,
        is_popular=entry.is_popular,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def orm_to_catalog_entry(orm: CatalogEntryORM) -> CatalogEntry:
    return CatalogEntry(
        entry_id=orm.entry_id,
        slug=orm.slug,
        name=orm.name,
        description=orm.description,
        image=orm.image,
        tag=orm.tag,
        category=orm.category,
        ports=[PortMapping.from_dict(p) for p in orm.ports or []],
        volumes=[VolumeMapping.from_dict(v) for v in orm.volumes or []],
        environment=[EnvVar.from_dict(e) for e in orm.environment or []],
        min_memory=orm.min_memory,
        min_cpu=orm.min_cpu,
        icon=orm.icon,
        website=orm.website,
        documentation=orm.documentation,
        is_popular=orm.is_popular,
        created_at=_aware(orm.created_at),
        updated_at=_aware(orm.updated_at),
    )


def instance_to_orm(instance: InstalledInstance) -> InstalledInstanceORM:
    """Convert installed instance domain model to ORM."""
    return InstalledInstanceORM(
        instance_id=instance.instance_id,
        entry_id=instance.entry_id,
        entry_slug=instance.entry_slug,
        entry_name=instance.entry_name,
        owner_id=instance.owner_id,
        domain_id=instance.domain_id,
        subdomain=instance.subdomain,
        container_id=instance.container_id,
        container_name=instance.container_name,
        status=instance.status,
        ports=[p.to_dict() for p in instance.ports],
        volumes=[v.to_dict() for v in instance.volumes],
        environment=[e.to_dict() for e in instance.environment],
        memory=instance.memory,
        cpu=instance.cpu,
        auto_start=instance.auto_start,
        backup_enabled=instance.backup_enabled,
        last_backup=instance.last_backup,
        logs=[{
            "timestamp": log.timestamp.isoformat(),
            "message": log.message,
            "level": log.level.value,
        } for log in instance.logs],
        created_at=instance.created_at,
        updated_at=instance.updated_at,
    )


def orm_to_instance(orm: InstalledInstanceORM) -> InstalledInstance:
    return InstalledInstance(
        instance_id=orm.instance_id,
        entry_id=orm.entry_id,
        entry_slug=orm.entry_slug,
        entry_name=orm.entry_name,
        owner_id=orm.owner_id,
        domain_id=orm.domain_id,
        subdomain=orm.subdomain,
        container_id=orm.container_id,
        container_name=orm.container_name,
        status=orm.status,
        ports=[PortMapping.from_dict(p) for p in orm.ports or []],
        volumes=[VolumeMapping.from_dict(v) for v in orm.volumes or []],
        environment=[EnvVar.from_dict(e) for e in orm.environment or []],
        memory=orm.memory,
        cpu=orm.cpu,
        auto_start=orm.auto_start,
        backup_enabled=orm.backup_enabled,
        last_backup=_aware(orm.last_backup),
        logs=[
            InstanceLogEntry(
                message=log["message"],
                level=LogLevel(log.get("level", "info")),
                timestamp=_aware(datetime.fromisoformat(log["timestamp"])),
            )
            for log in orm.logs or []
        ],
        created_at=_aware(orm.created_at),
        updated_at=_aware(orm.updated_at),
    )


def domain_to_orm(domain: DomainRecord) -> DomainORM:
    """Convert domain record to ORM."""
    return DomainORM(
        domain_id=domain.domain_id,
        name=domain.name,
        owner_id=domain.owner_id,
        verification_token=domain.verification_token,
        is_verified=domain.is_verified,
        verified_at=domain.verified_at,
        dns_records=[r.to_dict() for r in domain.dns_records],
        ssl_enabled=domain.ssl_enabled,
        ssl_cert_path=domain.ssl_cert_path,
        ssl_key_path=domain.ssl_key_path,
        ssl_expires_at=domain.ssl_expires_at,
        mail_enabled=domain.mail_enabled,
        is_active=domain.is_active,
        settings=domain.settings.to_dict(),
        created_at=domain.created_at,
        updated_at=domain.updated_at,
    )


def orm_to_domain(orm: DomainORM) -> DomainRecord:
    return DomainRecord(
        domain_id=orm.domain_id,
        name=orm.name,
        owner_id=orm.owner_id,
        verification_token=orm.verification_token,
        is_verified=orm.is_verified,
        verified_at=_aware(orm.verified_at),
        dns_records=[DNSRecord.from_dict(r) for r in orm.dns_records or []],
        ssl_enabled=orm.ssl_enabled,
        ssl_cert_path=orm.ssl_cert_path,
        ssl_key_path=orm.ssl_key_path,
        ssl_expires_at=_aware(orm.ssl_expires_at),
        mail_enabled=orm.mail_enabled,
        is_active=orm.is_active,
        settings=DomainSettings.from_dict(orm.settings),
        created_at=_aware(orm.created_at),
        updated_at=_aware(orm.updated_at),
    )


def mail_account_to_orm(account: MailAccount) -> MailAccountORM:
    """Convert mail account to ORM."""
    return MailAccountORM(
        account_id=account.account_id,
        email=account.email,
        username=account.username,
        domain_id=account.domain_id,
        domain_name=account.domain_name,
        owner_id=account.owner_id,
        password_hash=account.password_hash,
        display_name=account.display_name,
        quota=account.quota,
        used_space=account.used_space,
        is_active=account.is_active,
        forwarding_enabled=account.forwarding_enabled,
        forwarding_address=account.forwarding_address,
        keep_copy=account.keep_copy,
        auto_reply_enabled=account.auto_reply_enabled,
        auto_reply_subject=account.auto_reply_subject,
        auto_reply_message=account.auto_reply_message,
        aliases=list(account.aliases),
        last_login=account.last_login,
        created_at=account.created_at,
        updated_at=account.updated_at,
    )


def orm_to_mail_account(orm: MailAccountORM) -> MailAccount:
    return MailAccount(
        account_id=orm.account_id,
        username=orm.username,
        domain_id=orm.domain_id,
        domain_name=orm.domain_name,
        owner_id=orm.owner_id,
        password_hash=orm.password_hash,
        display_name=orm.display_name,
        quota=orm.quota,
        used_space=orm.used_space,
        is_active=orm.is_active,
        forwarding_enabled=orm.forwarding_enabled,
        forwarding_address=orm.forwarding_address,
        keep_copy=orm.keep_copy,
        auto_reply_enabled=orm.auto_reply_enabled,
        auto_reply_subject=orm.auto_reply_subject,
        auto_reply_message=orm.auto_reply_message,
        aliases=list(orm.aliases or []),
        last_login=_aware(orm.last_login),
        created_at=_aware(orm.created_at),
        updated_at=_aware(orm.updated_at),
    )


def user_to_orm(user: UserAccount) -> UserORM:
    """Convert user account to ORM."""
    return UserORM(
        user_id=user.user_id,
        email=user.email,
        password_hash=user.password_hash,
        name=user.name,
        role=user.role,
        is_active=user.is_active,
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def orm_to_user(orm: UserORM) -> UserAccount:
    return UserAccount(
        user_id=orm.user_id,
        email=orm.email,
        password_hash=orm.password_hash,
        name=orm.name,
        role=orm.role,
        is_active=orm.is_active,
        last_login=_aware(orm.last_login),
        created_at=_aware(orm.created_at),
        updated_at=_aware(orm.updated_at),
    )


# ============================================
# BASE REPOSITORY
# ============================================

class _SqlRepository:
    """Session handling shared by all registry repositories."""

    label = "record"

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or SessionLocal

    def _get_session(self) -> Session:
        return self._session_factory()

    def _write(self, action: str, key, work: Callable[[Session], None]) -> None:
        """Run a write in its own transaction, mapping constraint violations to ConflictError."""
        session = self._get_session()
        try:
            work(session)
            session.commit()
            logger.debug(f"[{self.label}_repo] {action} {key}")
        except IntegrityError as e:
            session.rollback()
            raise ConflictError(f"{self.label.capitalize()} {key} already exists") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise PanelError(f"Failed to {action} {self.label}: {e}") from e
        finally:
            session.close()

    def _read(self, work: Callable[[Session], T]) -> T:
        session = self._get_session()
        try:
            return work(session)
        finally:
            session.close()

    def _merge(self, orm_class, key, orm) -> None:
        def work(session: Session) -> None:
            if session.get(orm_class, key) is None:
                raise NotFoundError(f"{self.label.capitalize()} {key} not found")
            session.merge(orm)
        self._write("update", key, work)

    def _delete(self, orm_class, key) -> bool:
        deleted = []

        def work(session: Session) -> None:
            orm = session.get(orm_class, key)
            if orm is not None:
                session.delete(orm)
                deleted.append(key)
        self._write("delete", key, work)
        return bool(deleted)


# ============================================
# CATALOG REPOSITORY
# ============================================

class CatalogRepository(_SqlRepository):
    """Repository for catalog entries."""

    label = "catalog entry"

    def create(self, entry: CatalogEntry) -> None:
        self._write("create", entry.slug, lambda s: s.add(catalog_entry_to_orm(entry)))

    def get(self, entry_id: UUID) -> Optional[CatalogEntry]:
        def work(session):
            orm = session.get(CatalogEntryORM, entry_id)
            return orm_to_catalog_entry(orm) if orm else None
        return self._read(work)

    def get_by_slug(self, slug: str) -> Optional[CatalogEntry]:
        def work(session):
            orm = session.query(CatalogEntryORM).filter(CatalogEntryORM.slug == slug).first()
            return orm_to_catalog_entry(orm) if orm else None
        return self._read(work)

    def list(
        self,
        category=None,
        search: Optional[str] = None,
        popular_only: bool = False,
    ) -> List[CatalogEntry]:
        """List entries, popular first then by name."""
        def work(session):
            query = session.query(CatalogEntryORM)
            if category:
                query = query.filter(CatalogEntryORM.category == category)
            if popular_only:
                query = query.filter(CatalogEntryORM.is_popular.is_(True))
            if search:
                pattern = f"%{search.lower()}%"
                query = query.filter(or_(
                    func.lower(CatalogEntryORM.name).like(pattern),
                    func.lower(CatalogEntryORM.slug).like(pattern),
                    func.lower(CatalogEntryORM.description).like(pattern),
                ))
            query = query.order_by(CatalogEntryORM.is_popular.desc(), CatalogEntryORM.name)
            return [orm_to_catalog_entry(orm) for orm in query.all()]
        return self._read(work)

    def update(self, entry: CatalogEntry) -> None:
        self._merge(CatalogEntryORM, entry.entry_id, catalog_entry_to_orm(entry))

    def delete(self, entry_id: UUID) -> bool:
        return self._delete(CatalogEntryORM, entry_id)


# ============================================
# INSTANCE REPOSITORY
# ============================================

class InstanceRepository(_SqlRepository):
    """Repository for installed instances."""

    label = "instance"

    def create(self, instance: InstalledInstance) -> None:
        """Insert; a taken container_name surfaces as ConflictError."""
        session = self._get_session()
        try:
            session.add(instance_to_orm(instance))
            session.commit()
            logger.debug(f"[instance_repo] created instance {instance.instance_id}")
        except IntegrityError as e:
            session.rollback()
            raise ConflictError(f"Container name '{instance.container_name}' is already in use") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise PanelError(f"Failed to create instance: {e}") from e
        finally:
            session.close()

    def get(self, instance_id: UUID) -> Optional[InstalledInstance]:
        def work(session):
            orm = session.get(InstalledInstanceORM, instance_id)
            return orm_to_instance(orm) if orm else None
        return self._read(work)

    def get_by_container_name(self, container_name: str) -> Optional[InstalledInstance]:
        def work(session):
            orm = session.query(InstalledInstanceORM).filter(
                InstalledInstanceORM.container_name == container_name
            ).first()
            return orm_to_instance(orm) if orm else None
        return self._read(work)

    def list(self, owner_id: Optional[UUID] = None) -> List[InstalledInstance]:
        def work(session):
            query = session.query(InstalledInstanceORM)
            if owner_id is not None:
                query = query.filter(InstalledInstanceORM.owner_id == owner_id)
            query = query.order_by(InstalledInstanceORM.created_at.desc())
            return [orm_to_instance(orm) for orm in query.all()]
        return self._read(work)

    def count_by_entry(self, entry_id: UUID) -> int:
        return self._read(lambda s: s.query(InstalledInstanceORM).filter(
            InstalledInstanceORM.entry_id == entry_id
        ).count())

    def update(self, instance: InstalledInstance) -> None:
        self._merge(InstalledInstanceORM, instance.instance_id, instance_to_orm(instance))

    def delete(self, instance_id: UUID) -> bool:
        return self._delete(InstalledInstanceORM, instance_id)


# ============================================
# DOMAIN REPOSITORY
# ============================================

class DomainRepository(_SqlRepository):
    """Repository for domains."""

    label = "domain"

    def create(self, domain: DomainRecord) -> None:
        self._write("create", domain.name, lambda s: s.add(domain_to_orm(domain)))

    def get(self, domain_id: UUID) -> Optional[DomainRecord]:
        def work(session):
            orm = session.get(DomainORM, domain_id)
            return orm_to_domain(orm) if orm else None
        return self._read(work)

    def get_by_name(self, name: str) -> Optional[DomainRecord]:
        def work(session):
            orm = session.query(DomainORM).filter(DomainORM.name == name.lower()).first()
            return orm_to_domain(orm) if orm else None
        return self._read(work)

    def list(self, owner_id: Optional[UUID] = None) -> List[DomainRecord]:
        def work(session):
            query = session.query(DomainORM)
            if owner_id is not None:
                query = query.filter(DomainORM.owner_id == owner_id)
            return [orm_to_domain(orm) for orm in query.order_by(DomainORM.name).all()]
        return self._read(work)

    def update(self, domain: DomainRecord) -> None:
        self._merge(DomainORM, domain.domain_id, domain_to_orm(domain))

    def delete(self, domain_id: UUID) -> bool:
        return self._delete(DomainORM, domain_id)


# ============================================
# MAIL ACCOUNT REPOSITORY
# ============================================

class MailAccountRepository(_SqlRepository):
    """Repository for mail accounts."""

    label = "mail account"

    def create(self, account: MailAccount) -> None:
        self._write("create", account.email, lambda s: s.add(mail_account_to_orm(account)))

    def get(self, account_id: UUID) -> Optional[MailAccount]:
        def work(session):
            orm = session.get(MailAccountORM, account_id)
            return orm_to_mail_account(orm) if orm else None
        return self._read(work)

    def get_by_email(self, email: str) -> Optional[MailAccount]:
        def work(session):
            orm = session.query(MailAccountORM).filter(MailAccountORM.email == email.lower()).first()
            return orm_to_mail_account(orm) if orm else None
        return self._read(work)

    def list(
        self,
        owner_id: Optional[UUID] = None,
        domain_id: Optional[UUID] = None,
    ) -> List[MailAccount]:
        def work(session):
            query = session.query(MailAccountORM)
            if owner_id is not None:
                query = query.filter(MailAccountORM.owner_id == owner_id)
            if domain_id is not None:
                query = query.filter(MailAccountORM.domain_id == domain_id)
            return [orm_to_mail_account(orm) for orm in query.order_by(MailAccountORM.email).all()]
        return self._read(work)

    def update(self, account: MailAccount) -> None:
        self._merge(MailAccountORM, account.account_id, mail_account_to_orm(account))

    def delete(self, account_id: UUID) -> bool:
        return self._delete(MailAccountORM, account_id)


# ============================================
# USER REPOSITORY
# ============================================

class UserRepository(_SqlRepository):
    """Repository for panel users."""

    label = "user"

    def create(self, user: UserAccount) -> None:
        self._write("create", user.email, lambda s: s.add(user_to_orm(user)))

    def get(self, user_id: UUID) -> Optional[UserAccount]:
        def work(session):
            orm = session.get(UserORM, user_id)
            return orm_to_user(orm) if orm else None
        return self._read(work)

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        def work(session):
            orm = session.query(UserORM).filter(UserORM.email == email.lower()).first()
            return orm_to_user(orm) if orm else None
        return self._read(work)

    def list(self) -> List[UserAccount]:
        return self._read(
            lambda s: [orm_to_user(orm) for orm in s.query(UserORM).order_by(UserORM.created_at).all()]
        )

    def count(self) -> int:
        return self._read(lambda s: s.query(UserORM).count())

    def update(self, user: UserAccount) -> None:
        self._merge(UserORM, user.user_id, user_to_orm(user))

    def delete(self, user_id: UUID) -> bool:
        return self._delete(UserORM, user_id)
