#control_panel\infrastructure\postgres\models.py
"""SQLAlchemy ORM models for database tables."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, BigInteger, DateTime, JSON, Enum as SQLEnum, Text, Boolean, Float,
    ForeignKey, Uuid
)

from control_panel.infrastructure.postgres.database import Base
from control_panel.registry.models import AppCategory, InstanceStatus, Role


def _utcnow():
    return datetime.now(timezone.utc)


class CatalogEntryORM(Base):
    """
    Catalog of installable applications.

    Indexes:
    - Unique slug
    - Index on category for filtered listing
    """

    __tablename__ = "catalog_entries"

    entry_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")

    image = Column(String(255), nullable=False)
    tag = Column(String(100), nullable=False, default="latest")
    category = Column(
        SQLEnum(AppCategory, name="app_category", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AppCategory.OTHER,
        index=True
    )

    # Declared requirements
    ports = Column(JSON, nullable=False, default=list)
    volumes = Column(JSON, nullable=False, default=list)
    environment = Column(JSON, nullable=False, default=list)

    # Resource hints
    min_memory = Column(Integer, nullable=False, default=256)
    min_cpu = Column(Float, nullable=False, default=0.5)

    icon = Column(String(500), nullable=True)
    website = Column(String(500), nullable=True)
    documentation = Column(String(500), nullable=True)
    is_popular = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class InstalledInstanceORM(Base):
    """
    Installed application instances.

    Indexes:
    - Unique container_name (closes the check-then-create race)
    - Index on owner_id for per-user listing
    """

    __tablename__ = "installed_instances"

    instance_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    entry_id = Column(Uuid, ForeignKey("catalog_entries.entry_id"), nullable=False, index=True)
    entry_slug = Column(String(100), nullable=True)
    entry_name = Column(String(255), nullable=True)

    owner_id = Column(Uuid, nullable=False, index=True)
    domain_id = Column(Uuid, nullable=True)
    subdomain = Column(String(255), nullable=True)

    container_id = Column(String(128), nullable=True)
    container_name = Column(String(255), nullable=False, unique=True)

    status = Column(
        SQLEnum(InstanceStatus, name="instance_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InstanceStatus.INSTALLING,
        index=True
    )

    # Bindings
    ports = Column(JSON, nullable=False, default=list)
    volumes = Column(JSON, nullable=False, default=list)
    environment = Column(JSON, nullable=False, default=list)

    # Limits
    memory = Column(Integer, nullable=False, default=512)
    cpu = Column(Float, nullable=False, default=1.0)

    auto_start = Column(Boolean, nullable=False, default=True)
    backup_enabled = Column(Boolean, nullable=False, default=False)
    last_backup = Column(DateTime(timezone=True), nullable=True)

    # Append-only [{timestamp, message, level}]
    logs = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class DomainORM(Base):
    """Hosted domains."""

    __tablename__ = "domains"

    domain_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    name = Column(String(255), nullable=False, unique=True)
    owner_id = Column(Uuid, nullable=False, index=True)

    verification_token = Column(String(64), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    dns_records = Column(JSON, nullable=False, default=list)

    ssl_enabled = Column(Boolean, nullable=False, default=False)
    ssl_cert_path = Column(String(500), nullable=True)
    ssl_key_path = Column(String(500), nullable=True)
    ssl_expires_at = Column(DateTime(timezone=True), nullable=True)

    mail_enabled = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    settings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class MailAccountORM(Base):
    """Virtual mailboxes."""

    __tablename__ = "mail_accounts"

    account_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    username = Column(String(64), nullable=False)
    domain_id = Column(Uuid, ForeignKey("domains.domain_id"), nullable=False, index=True)
    domain_name = Column(String(255), nullable=False)
    owner_id = Column(Uuid, nullable=False, index=True)

    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    quota = Column(BigInteger, nullable=False, default=1073741824)
    used_space = Column(BigInteger, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    forwarding_enabled = Column(Boolean, nullable=False, default=False)
    forwarding_address = Column(String(320), nullable=True)
    keep_copy = Column(Boolean, nullable=False, default=True)

    auto_reply_enabled = Column(Boolean, nullable=False, default=False)
    auto_reply_subject = Column(String(255), nullable=True)
    auto_reply_message = Column(Text, nullable=True)

    aliases = Column(JSON, nullable=False, default=list)
    last_login = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class UserORM(Base):
    """Panel users."""

    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True, default=uuid4, nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER
    )
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
