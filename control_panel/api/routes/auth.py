from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from control_panel.api.dependencies import get_current_user, get_services, require_admin
from control_panel.api.schemas.auth import (
    LoginRequest, PasswordChangeRequest, ProfileUpdateRequest, TokenResponse,
    UserCreateRequest, UserResponse,
)
from control_panel.api.schemas.common import MessageResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, response: Response, svc=Depends(get_services)):
    result = svc.users.authenticate(request.email, request.password)
    response.set_cookie(
        key=svc.settings.cookie_name,
        value=result["token"],
        httponly=True,
        samesite="lax",
        max_age=svc.settings.jwt_expire_days * 24 * 3600,
    )
    return TokenResponse(token=result["token"], user=UserResponse.model_validate(result["user"]))


@router.get("/me", response_model=UserResponse)
def me(user=Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.put("/password", response_model=MessageResponse)
def change_password(request: PasswordChangeRequest, user=Depends(get_current_user), svc=Depends(get_services)):
    svc.users.change_password(user, request.current_password, request.new_password)
    return MessageResponse(message="Password changed")


@router.put("/profile", response_model=UserResponse)
def update_profile(request: ProfileUpdateRequest, user=Depends(get_current_user), svc=Depends(get_services)):
    return UserResponse.model_validate(svc.users.update_profile(user, request.name))


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, user=Depends(get_current_user), svc=Depends(get_services)):
    response.delete_cookie(svc.settings.cookie_name)
    return MessageResponse(message="Logged out")


# -------------------------
# User administration
# -------------------------

@router.get("/users", response_model=List[UserResponse])
def list_users(user=Depends(require_admin), svc=Depends(get_services)):
    return [UserResponse.model_validate(u) for u in svc.users.list_users(user)]


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(request: UserCreateRequest, user=Depends(require_admin), svc=Depends(get_services)):
    created = svc.users.create_user(user, request.email, request.password, request.name, request.role)
    return UserResponse.model_validate(created)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: UUID, user=Depends(require_admin), svc=Depends(get_services)):
    svc.users.delete_user(user, user_id)
    return MessageResponse(message="User deleted")
