from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from control_panel.registry.models import (
    AppCategory, EnvVar, InstanceStatus, LogLevel, PortMapping, VolumeMapping
)


# ============================================
# BINDINGS
# ============================================

class PortSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    container: int = Field(..., ge=1, le=65535)
    host: Optional[int] = Field(default=None, ge=1, le=65535)
    protocol: Literal["tcp", "udp"] = "tcp"

    def to_domain(self) -> PortMapping:
        return PortMapping(container=self.container, host=self.host, protocol=self.protocol)


class VolumeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    container: str
    host: Optional[str] = None

    def to_domain(self) -> VolumeMapping:
        return VolumeMapping(container=self.container, host=self.host)


class EnvVarSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str = Field(..., min_length=1)
    value: str = ""
    required: bool = False
    description: Optional[str] = None

    def to_domain(self) -> EnvVar:
        return EnvVar(key=self.key, value=self.value, required=self.required, description=self.description)


def _to_domain(items):
    return None if items is None else [item.to_domain() for item in items]


# ============================================
# CATALOG
# ============================================

class CatalogEntryCreateRequest(BaseModel):
    slug: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1, validation_alias=AliasChoices("image", "dockerImage"))
    tag: str = Field(default="latest", validation_alias=AliasChoices("tag", "dockerTag"))
    description: str = ""
    category: AppCategory = AppCategory.OTHER
    ports: List[PortSchema] = Field(default_factory=list)
    volumes: List[VolumeSchema] = Field(default_factory=list)
    environment: List[EnvVarSchema] = Field(default_factory=list)
    min_memory: int = Field(default=256, ge=6)
    min_cpu: float = Field(default=0.5, gt=0)
    icon: Optional[str] = None
    website: Optional[str] = None
    documentation: Optional[str] = None
    is_popular: bool = False

    @field_validator("slug")
    @classmethod
    def slug_format(cls, v: str) -> str:
        v = v.strip().lower()
        if not all(ch.isalnum() or ch in "-_" for ch in v):
            raise ValueError("slug may only contain letters, digits, '-' and '_'")
        return v


class CatalogEntryUpdateRequest(BaseModel):
    slug: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    tag: Optional[str] = None
    description: Optional[str] = None
    category: Optional[AppCategory] = None
    ports: Optional[List[PortSchema]] = None
    volumes: Optional[List[VolumeSchema]] = None
    environment: Optional[List[EnvVarSchema]] = None
    min_memory: Optional[int] = Field(default=None, ge=6)
    min_cpu: Optional[float] = Field(default=None, gt=0)
    icon: Optional[str] = None
    website: Optional[str] = None
    documentation: Optional[str] = None
    is_popular: Optional[bool] = None

    def to_changes(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_none=True, exclude={"ports", "volumes", "environment"})
        for attr in ("ports", "volumes", "environment"):
            if getattr(self, attr) is not None:
                changes[attr] = _to_domain(getattr(self, attr))
        return changes


class CatalogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: UUID
    slug: str
    name: str
    description: str
    image: str
    tag: str
    image_ref: str
    category: AppCategory
    ports: List[PortSchema]
    volumes: List[VolumeSchema]
    environment: List[EnvVarSchema]
    min_memory: int
    min_cpu: float
    icon: Optional[str] = None
    website: Optional[str] = None
    documentation: Optional[str] = None
    is_popular: bool
    created_at: datetime
    updated_at: datetime


# ============================================
# INSTANCES
# ============================================

class InstallRequest(BaseModel):
    """Install parameters; camelCase keys are accepted too."""

    container_name: str = Field(..., validation_alias=AliasChoices("container_name", "containerName"))
    domain_id: Optional[UUID] = Field(default=None, validation_alias=AliasChoices("domain_id", "domainId"))
    subdomain: Optional[str] = None
    ports: Optional[List[PortSchema]] = None
    volumes: Optional[List[VolumeSchema]] = None
    environment: Optional[List[EnvVarSchema]] = None
    memory: Optional[int] = Field(default=None, ge=6)
    cpu: Optional[float] = Field(default=None, gt=0)


class ReconfigureRequest(BaseModel):
    environment: Optional[List[EnvVarSchema]] = None
    memory: Optional[int] = Field(default=None, ge=6)
    cpu: Optional[float] = Field(default=None, gt=0)


class InstanceLogSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    message: str
    level: LogLevel


class InstanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    instance_id: UUID
    entry_id: UUID
    entry_slug: Optional[str] = None
    entry_name: Optional[str] = None
    owner_id: UUID
    domain_id: Optional[UUID] = None
    subdomain: Optional[str] = None
    container_id: Optional[str] = None
    container_name: str
    status: InstanceStatus
    ports: List[PortSchema]
    volumes: List[VolumeSchema]
    environment: List[EnvVarSchema]
    memory: int
    cpu: float
    auto_start: bool
    backup_enabled: bool
    last_backup: Optional[datetime] = None
    logs: List[InstanceLogSchema]
    created_at: datetime
    updated_at: datetime
    container_info: Optional[Dict[str, Any]] = None


class InstanceLogsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    app_logs: List[InstanceLogSchema] = Field(alias="appLogs")
    container_logs: str = Field(alias="containerLogs")
