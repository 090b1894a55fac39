"""Authentication routes.

Provides password-based authentication endpoints:
- POST /api/auth/register: Create an account (and vendor profile) and get a JWT
- POST /api/auth/login: Verify email + password and get a JWT
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import AliasChoices, EmailStr, Field

from vendorhive.api.dependencies import get_auth_service
from vendorhive.schemas import CamelModel, UserPublic, UserRole
from vendorhive.services.auth_service import AuthService


router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# Request/Response Models
class VendorDetails(CamelModel):
    """Business details supplied when registering a vendor account."""
    business_name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    service_tags: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("services", "serviceTags", "service_tags"),
    )
    business_hours: Optional[Dict[str, Any]] = None
    cover_image: Optional[str] = None


class RegisterRequest(CamelModel):
    """Registration payload."""
    name: str = Field(..., min_length=1, examples=["Joe Smith"])
    username: str = Field(..., min_length=1, examples=["joe"])
    email: EmailStr = Field(..., examples=["joe@example.com"])
    password: str = Field(..., min_length=6, description="At least 6 characters")
    role: UserRole = Field(default=UserRole.USER)
    profile_image: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    vendor: Optional[VendorDetails] = None


class LoginRequest(CamelModel):
    """Login payload."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(CamelModel):
    """Authenticated user with a JWT access token."""
    user: UserPublic
    token: str = Field(..., description="JWT access token")


# Routes
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a user or vendor account and receive a JWT access token",
)
def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Register a new account.

    Raises:
        400: Invalid payload, or email/username already registered
    """
    profile = request.model_dump(include={"profile_image", "phone", "bio", "location"}, exclude_none=True)
    vendor = request.vendor.model_dump(exclude_none=True) if request.vendor else None
    return auth_service.register(
        name=request.name,
        username=request.username,
        email=str(request.email),
        password=request.password,
        role=request.role,
        profile=profile,
        vendor=vendor,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Login",
    description="Verify email and password and receive a JWT access token",
)
def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Log in with email and password.

    Raises:
        400: Missing or malformed email, or missing password
        401: Invalid credentials
    """
    return auth_service.login(str(request.email), request.password)
