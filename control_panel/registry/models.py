#control_panel\registry\models.py
"""Domain models for the catalog, installed instances, domains, mail and users."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================
# ENUMS
# ============================================

class AppCategory(Enum):
    """Catalog category tag."""
    WEB = "web"
    DATABASE = "database"
    MAIL = "mail"
    STORAGE = "storage"
    MONITORING = "monitoring"
    DEVELOPMENT = "development"
    OTHER = "other"


class InstanceStatus(Enum):
    """Installed instance lifecycle status."""
    INSTALLING = "installing"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"
    UPDATING = "updating"


class LogLevel(Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class Role(Enum):
    ADMIN = "admin"
    USER = "user"


DNS_RECORD_TYPES = {"A", "AAAA", "CNAME", "MX", "TXT", "NS", "SRV", "CAA"}


# ============================================
# BINDINGS
# ============================================

@dataclass
class PortMapping:
    """Container port published on the host."""
    container: int
    host: Optional[int] = None
    protocol: str = "tcp"  # "tcp", "udp"

    def to_dict(self) -> Dict[str, Any]:
        return {"container": self.container, "host": self.host, "protocol": self.protocol}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "PortMapping":
        return PortMapping(
            container=int(data["container"]),
            host=int(data["host"]) if data.get("host") is not None else None,
            protocol=data.get("protocol") or "tcp",
        )


@dataclass
class VolumeMapping:
    """Host path (or named volume) mounted into the container."""
    container: str
    host: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"container": self.container, "host": self.host}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "VolumeMapping":
        return VolumeMapping(container=data["container"], host=data.get("host"))


@dataclass
class EnvVar:
    """Environment variable declaration or value."""
    key: str
    value: str = ""
    required: bool = False
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "required": self.required,
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "EnvVar":
        return EnvVar(
            key=data["key"],
            value="" if data.get("value") is None else str(data["value"]),
            required=bool(data.get("required", False)),
            description=data.get("description"),
        )


# ============================================
# CATALOG
# ============================================

@dataclass
class CatalogEntry:
    """Installable application template."""
    slug: str
    name: str
    image: str
    entry_id: UUID = field(default_factory=uuid4)
    description: str = ""
    tag: str = "latest"
    category: AppCategory = AppCategory.OTHER

    ports: List[PortMapping] = field(default_factory=list)
    volumes: List[VolumeMapping] = field(default_factory=list)
    environment: List[EnvVar] = field(default_factory=list)

    min_memory: int = 256  # MB
    min_cpu: float = 0.5  # vCPU

    icon: Optional[str] = None
    website: Optional[str] = None
    documentation: Optional[str] = None
    is_popular: bool = False

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def image_ref(self) -> str:
        return f"{self.image}:{self.tag or 'latest'}"


# ============================================
# INSTALLED INSTANCE
# ============================================

@dataclass
class InstanceLogEntry:
    message: str
    level: LogLevel = LogLevel.INFO
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class InstalledInstance:
    """Concrete, user-owned deployment of a catalog entry."""
    entry_id: UUID
    owner_id: UUID
    container_name: str
    instance_id: UUID = field(default_factory=uuid4)

    entry_slug: Optional[str] = None
    entry_name: Optional[str] = None

    domain_id: Optional[UUID] = None
    subdomain: Optional[str] = None

    container_id: Optional[str] = None
    status: InstanceStatus = InstanceStatus.INSTALLING

    ports: List[PortMapping] = field(default_factory=list)
    volumes: List[VolumeMapping] = field(default_factory=list)
    environment: List[EnvVar] = field(default_factory=list)

    memory: int = 512  # MB
    cpu: float = 1.0  # vCPU

    auto_start: bool = True
    backup_enabled: bool = False
    last_backup: Optional[datetime] = None

    logs: List[InstanceLogEntry] = field(default_factory=list)

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def append_log(self, message: str, level: LogLevel = LogLevel.INFO) -> InstanceLogEntry:
        entry = InstanceLogEntry(message=message, level=level)
        self.logs.append(entry)
        self.updated_at = entry.timestamp
        return entry


# ============================================
# DOMAIN
# ============================================

@dataclass
class DNSRecord:
    """DNS record entry kept for the zone."""
    record_type: str  # see DNS_RECORD_TYPES
    name: str
    value: str
    ttl: int = 3600
    priority: Optional[int] = None
    record_id: UUID = field(default_factory=uuid4)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": str(self.record_id),
            "record_type": self.record_type,
            "name": self.name,
            "value": self.value,
            "ttl": self.ttl,
            "priority": self.priority,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "DNSRecord":
        return DNSRecord(
            record_id=UUID(data["record_id"]) if data.get("record_id") else uuid4(),
            record_type=data["record_type"],
            name=data["name"],
            value=data["value"],
            ttl=int(data.get("ttl") or 3600),
            priority=data.get("priority"),
        )


@dataclass
class DomainSettings:
    catch_all: bool = False
    catch_all_address: Optional[str] = None
    spf_record: Optional[str] = None
    dkim_enabled: bool = False
    dmarc_record: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "catch_all": self.catch_all,
            "catch_all_address": self.catch_all_address,
            "spf_record": self.spf_record,
            "dkim_enabled": self.dkim_enabled,
            "dmarc_record": self.dmarc_record,
        }

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "DomainSettings":
        data = data or {}
        return DomainSettings(
            catch_all=bool(data.get("catch_all", False)),
            catch_all_address=data.get("catch_all_address"),
            spf_record=data.get("spf_record"),
            dkim_enabled=bool(data.get("dkim_enabled", False)),
            dmarc_record=data.get("dmarc_record"),
        )


@dataclass
class DomainRecord:
    """Hosted domain. Name is globally unique and lower-cased."""
    name: str
    owner_id: UUID
    verification_token: str
    domain_id: UUID = field(default_factory=uuid4)

    is_verified: bool = False
    verified_at: Optional[datetime] = None
    dns_records: List[DNSRecord] = field(default_factory=list)

    ssl_enabled: bool = False
    ssl_cert_path: Optional[str] = None
    ssl_key_path: Optional[str] = None
    ssl_expires_at: Optional[datetime] = None

    mail_enabled: bool = False
    is_active: bool = True
    settings: DomainSettings = field(default_factory=DomainSettings)

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def find_record(self, record_id: UUID) -> Optional[DNSRecord]:
        for record in self.dns_records:
            if record.record_id == record_id:
                return record
        return None


# ============================================
# MAIL
# ============================================

@dataclass
class MailAccount:
    """Virtual mailbox. Email is username@domain and globally unique."""
    username: str
    domain_id: UUID
    domain_name: str
    owner_id: UUID
    password_hash: str
    account_id: UUID = field(default_factory=uuid4)

    display_name: Optional[str] = None
    quota: int = 1073741824  # bytes
    used_space: int = 0
    is_active: bool = True

    forwarding_enabled: bool = False
    forwarding_address: Optional[str] = None
    keep_copy: bool = True

    auto_reply_enabled: bool = False
    auto_reply_subject: Optional[str] = None
    auto_reply_message: Optional[str] = None

    aliases: List[str] = field(default_factory=list)
    last_login: Optional[datetime] = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def email(self) -> str:
        return f"{self.username}@{self.domain_name}"

    @property
    def maildir(self) -> str:
        return f"{self.domain_name}/{self.username}/"


# ============================================
# USER
# ============================================

@dataclass
class UserAccount:
    email: str
    password_hash: str
    name: str
    user_id: UUID = field(default_factory=uuid4)
    role: Role = Role.USER
    is_active: bool = True
    last_login: Optional[datetime] = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
