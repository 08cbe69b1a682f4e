from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from control_panel.registry.models import DNSRecord


class DNSRecordSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    record_id: UUID
    record_type: str
    name: str
    value: str
    ttl: int
    priority: Optional[int] = None


class DNSRecordCreateRequest(BaseModel):
    record_type: str = Field(..., validation_alias=AliasChoices("record_type", "type"))
    name: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)
    ttl: int = Field(default=3600, ge=60)
    priority: Optional[int] = Field(default=None, ge=0)

    def to_domain(self) -> DNSRecord:
        return DNSRecord(
            record_type=self.record_type.upper(),
            name=self.name,
            value=self.value,
            ttl=self.ttl,
            priority=self.priority,
        )


class DNSRecordUpdateRequest(BaseModel):
    record_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("record_type", "type"))
    name: Optional[str] = None
    value: Optional[str] = None
    ttl: Optional[int] = Field(default=None, ge=60)
    priority: Optional[int] = Field(default=None, ge=0)


class DomainSettingsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    catch_all: Optional[bool] = None
    catch_all_address: Optional[str] = None
    spf_record: Optional[str] = None
    dkim_enabled: Optional[bool] = None
    dmarc_record: Optional[str] = None


class DomainCreateRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=253)


class DomainUpdateRequest(BaseModel):
    is_active: Optional[bool] = None
    mail_enabled: Optional[bool] = None
    settings: Optional[DomainSettingsSchema] = None

    def to_changes(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_none=True, exclude={"settings"})
        if self.settings is not None:
            changes["settings"] = self.settings.model_dump(exclude_none=True)
        return changes


class DomainResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    domain_id: UUID
    name: str
    owner_id: UUID
    verification_token: str
    is_verified: bool
    verified_at: Optional[datetime] = None
    dns_records: List[DNSRecordSchema]
    ssl_enabled: bool
    ssl_cert_path: Optional[str] = None
    ssl_key_path: Optional[str] = None
    ssl_expires_at: Optional[datetime] = None
    mail_enabled: bool
    is_active: bool
    settings: DomainSettingsSchema
    created_at: datetime
    updated_at: datetime


class VerificationRecord(BaseModel):
    type: str
    name: str
    value: str


class DomainCreatedResponse(BaseModel):
    domain: DomainResponse
    verification_record: VerificationRecord


class MailEnabledResponse(BaseModel):
    message: str
    domain: DomainResponse
    dns_records: List[Dict[str, Any]]
