"""
Current-user profile routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import EmailStr, Field

from vendorhive.api.dependencies import get_auth_service, get_current_user
from vendorhive.schemas import CamelModel, User, UserPublic, Vendor
from vendorhive.services.auth_service import AuthService


class ProfileResponse(CamelModel):
    """The caller's account and, for vendors, their business profile."""
    user: UserPublic
    vendor_profile: Optional[Vendor] = None


class UpdateProfileRequest(CamelModel):
    """Fields a user may change on their own account; omitted fields are kept."""
    name: Optional[str] = Field(None, min_length=1)
    username: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    profile_image: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None


router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=ProfileResponse)
def get_me(
    user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Return the authenticated user and their vendor profile (null for plain users)."""
    return auth_service.get_profile(user.id)


@router.put("/me", response_model=ProfileResponse)
def update_me(
    request: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Update the authenticated user's account.

    Email and username must stay unique; a new password is re-hashed.
    """
    changes = request.model_dump(exclude_unset=True)
    if "email" in changes and changes["email"] is not None:
        changes["email"] = str(changes["email"])
    # name, username, email and password cannot be cleared
    for required in ("name", "username", "email", "password"):
        if changes.get(required) is None:
            changes.pop(required, None)
    return auth_service.update_profile(user.id, changes)
