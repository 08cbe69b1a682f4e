from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from control_panel.api.dependencies import get_current_user, get_services
from control_panel.api.schemas.common import MessageResponse
from control_panel.api.schemas.domains import DomainResponse, MailEnabledResponse
from control_panel.api.schemas.mail import (
    MailAccountCreateRequest, MailAccountResponse, MailAccountUpdateRequest,
    MailPasswordRequest, MailStatsResponse,
)

router = APIRouter(prefix="/api/mail", tags=["mail"])


@router.get("", response_model=List[MailAccountResponse])
def list_accounts(user=Depends(get_current_user), svc=Depends(get_services)):
    return [MailAccountResponse.model_validate(a) for a in svc.mail.list_accounts(user)]


@router.get("/domain/{domain_id}", response_model=List[MailAccountResponse])
def list_domain_accounts(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return [MailAccountResponse.model_validate(a) for a in svc.mail.list_by_domain(user, domain_id)]


@router.post("/enable/{domain_id}", response_model=MailEnabledResponse)
def enable_mail(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    result = svc.domains.enable_mail(user, domain_id)
    return MailEnabledResponse(
        message="Mail enabled. Add the DNS records below at your registrar.",
        domain=DomainResponse.model_validate(result["domain"]),
        dns_records=result["dns_records"],
    )


@router.get("/{account_id}", response_model=MailAccountResponse)
def get_account(account_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return MailAccountResponse.model_validate(svc.mail.get_account(user, account_id))


@router.post("", response_model=MailAccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(request: MailAccountCreateRequest, user=Depends(get_current_user), svc=Depends(get_services)):
    account = svc.mail.create_account(
        user,
        request.domain_id,
        request.username,
        request.password,
        display_name=request.display_name,
        quota=request.quota,
    )
    return MailAccountResponse.model_validate(account)


@router.put("/{account_id}", response_model=MailAccountResponse)
def update_account(
    account_id: UUID,
    request: MailAccountUpdateRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    return MailAccountResponse.model_validate(svc.mail.update_account(user, account_id, request.to_changes()))


@router.put("/{account_id}/password", response_model=MessageResponse)
def change_password(
    account_id: UUID,
    request: MailPasswordRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    svc.mail.change_password(user, account_id, request.password)
    return MessageResponse(message="Password changed")


@router.delete("/{account_id}", response_model=MessageResponse)
def delete_account(account_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.mail.delete_account(user, account_id)
    return MessageResponse(message="Mail account deleted")


@router.get("/{account_id}/stats", response_model=MailStatsResponse)
def account_stats(account_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return MailStatsResponse(**svc.mail.account_stats(user, account_id))
