from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from control_panel.api.dependencies import get_current_user, get_services
from control_panel.api.schemas.common import MessageResponse
from control_panel.api.schemas.domains import (
    DNSRecordCreateRequest, DNSRecordUpdateRequest, DomainCreateRequest, DomainCreatedResponse,
    DomainResponse, DomainUpdateRequest, VerificationRecord,
)

router = APIRouter(prefix="/api/domains", tags=["domains"])


@router.get("", response_model=List[DomainResponse])
def list_domains(user=Depends(get_current_user), svc=Depends(get_services)):
    return [DomainResponse.model_validate(d) for d in svc.domains.list_domains(user)]


@router.get("/{domain_id}", response_model=DomainResponse)
def get_domain(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return DomainResponse.model_validate(svc.domains.get_domain(user, domain_id))


@router.post("", response_model=DomainCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_domain(request: DomainCreateRequest, user=Depends(get_current_user), svc=Depends(get_services)):
    domain = svc.domains.create_domain(user, request.name)
    return DomainCreatedResponse(
        domain=DomainResponse.model_validate(domain),
        verification_record=VerificationRecord(**svc.domains.verification_record(domain)),
    )


@router.put("/{domain_id}", response_model=DomainResponse)
def update_domain(
    domain_id: UUID,
    request: DomainUpdateRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    return DomainResponse.model_validate(svc.domains.update_domain(user, domain_id, request.to_changes()))


@router.delete("/{domain_id}", response_model=MessageResponse)
def delete_domain(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.domains.delete_domain(user, domain_id)
    return MessageResponse(message="Domain deleted")


# -------------------------
# DNS records
# -------------------------

@router.post("/{domain_id}/dns", response_model=DomainResponse, status_code=status.HTTP_201_CREATED)
def add_dns_record(
    domain_id: UUID,
    request: DNSRecordCreateRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    return DomainResponse.model_validate(svc.domains.add_dns_record(user, domain_id, request.to_domain()))


@router.put("/{domain_id}/dns/{record_id}", response_model=DomainResponse)
def update_dns_record(
    domain_id: UUID,
    record_id: UUID,
    request: DNSRecordUpdateRequest,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    domain = svc.domains.update_dns_record(user, domain_id, record_id, request.model_dump(exclude_none=True))
    return DomainResponse.model_validate(domain)


@router.delete("/{domain_id}/dns/{record_id}", response_model=DomainResponse)
def delete_dns_record(
    domain_id: UUID,
    record_id: UUID,
    user=Depends(get_current_user),
    svc=Depends(get_services),
):
    return DomainResponse.model_validate(svc.domains.delete_dns_record(user, domain_id, record_id))


# -------------------------
# Verification / SSL
# -------------------------

@router.get("/{domain_id}/verification", response_model=VerificationRecord)
def verification_record(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    domain = svc.domains.get_domain(user, domain_id)
    return VerificationRecord(**svc.domains.verification_record(domain))


@router.post("/{domain_id}/verify", response_model=DomainResponse)
def verify_domain(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return DomainResponse.model_validate(svc.domains.verify_domain(user, domain_id))


@router.post("/{domain_id}/ssl", response_model=DomainResponse)
def issue_ssl(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return DomainResponse.model_validate(svc.domains.issue_ssl(user, domain_id))


@router.post("/{domain_id}/ssl/renew", response_model=DomainResponse)
def renew_ssl(domain_id: UUID, user=Depends(get_current_user), svc=Depends(get_services)):
    return DomainResponse.model_validate(svc.domains.renew_ssl(user, domain_id))
