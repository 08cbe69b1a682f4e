from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MailAccountCreateRequest(BaseModel):
    domain_id: UUID = Field(..., validation_alias=AliasChoices("domain_id", "domainId"))
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=8)
    display_name: Optional[str] = None
    quota: Optional[int] = Field(default=None, gt=0)


class MailAccountUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    is_active: Optional[bool] = None
    quota: Optional[int] = Field(default=None, gt=0)
    forwarding_enabled: Optional[bool] = None
    forwarding_address: Optional[str] = None
    keep_copy: Optional[bool] = None
    auto_reply_enabled: Optional[bool] = None
    auto_reply_subject: Optional[str] = None
    auto_reply_message: Optional[str] = None
    aliases: Optional[List[str]] = None

    def to_changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class MailPasswordRequest(BaseModel):
    password: str = Field(..., min_length=8)


class MailAccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: UUID
    email: str
    username: str
    domain_id: UUID
    domain_name: str
    owner_id: UUID
    display_name: Optional[str] = None
    quota: int
    used_space: int
    is_active: bool
    forwarding_enabled: bool
    forwarding_address: Optional[str] = None
    keep_copy: bool
    auto_reply_enabled: bool
    auto_reply_subject: Optional[str] = None
    auto_reply_message: Optional[str] = None
    aliases: List[str]
    last_login: Optional[datetime] = None
    created_at: datetime


class MailStatsResponse(BaseModel):
    email: str
    quota: int
    used: int
    percent: float
