"""User API endpoints for the authenticated account."""

from fastapi import APIRouter, Depends

from clicktales.common.schemas import ApiResponse
from clicktales.domains.auth.deps import authenticate, get_credential_service
from clicktales.domains.user.schemas import (
    AuthIdentity,
    ChangePasswordRequest,
    ProfileUpdate,
    UserPublic,
)
from clicktales.domains.user.service import CredentialService

router = APIRouter()


@router.get("/profile", response_model=ApiResponse, response_model_exclude_none=True)
async def get_profile(
    identity: AuthIdentity = Depends(authenticate),
    credentials: CredentialService = Depends(get_credential_service),
):
    """Get current user information."""
    user = await credentials.get_user(identity.id)
    return ApiResponse(data=UserPublic.model_validate(user).model_dump(mode="json", by_alias=True))


@router.put("/profile", response_model=ApiResponse, response_model_exclude_none=True)
async def update_profile(
    data: ProfileUpdate,
    identity: AuthIdentity = Depends(authenticate),
    credentials: CredentialService = Depends(get_credential_service),
):
    """Update current user information."""
    user = await credentials.update_profile(identity.id, data)
    return ApiResponse(
        message="Profile updated successfully",
        data=UserPublic.model_validate(user).model_dump(mode="json", by_alias=True),
    )


@router.post("/change-password", response_model=ApiResponse, response_model_exclude_none=True)
async def change_password(
    data: ChangePasswordRequest,
    identity: AuthIdentity = Depends(authenticate),
    credentials: CredentialService = Depends(get_credential_service),
):
    """Change password; every token issued before the change stops working."""
    await credentials.change_password(identity.id, data.current_password, data.new_password)
    return ApiResponse(message="Password changed successfully")


@router.post("/logout", response_model=ApiResponse, response_model_exclude_none=True)
async def logout(
    identity: AuthIdentity = Depends(authenticate),
    credentials: CredentialService = Depends(get_credential_service),
):
    await credentials.logout(identity.id)
    return ApiResponse(message="Logged out successfully")
