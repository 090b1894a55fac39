"""
API dependencies for FastAPI dependency injection.

Provides the storage backend, settings, authentication and the domain
services wired to them.
"""
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jwt.exceptions import InvalidTokenError

from vendorhive.api.middleware.error_handler import ForbiddenException, UnauthorizedException
from vendorhive.lib.jwt import get_user_from_token
from vendorhive.lib.passwords import PasswordHasher
from vendorhive.lib.settings import Settings
from vendorhive.schemas import User, UserRole
from vendorhive.services.auth_service import AuthService
from vendorhive.services.authorization import Actor
from vendorhive.services.booking_service import BookingService
from vendorhive.services.catalog_service import CatalogService
from vendorhive.services.media_service import MediaService
from vendorhive.services.review_service import ReviewService
from vendorhive.services.vendor_service import VendorService
from vendorhive.storage.base import Storage


# HTTP Bearer token security scheme; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency to get current authenticated user from JWT token.

    Raises:
        UnauthorizedException: 401 if the token is missing, invalid or expired,
            or its user no longer exists
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Authentication required")

    try:
        user_id, _role = get_user_from_token(
            credentials.credentials,
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
    except (InvalidTokenError, KeyError):
        raise UnauthorizedException("Invalid or expired token")

    user = storage.get_user(user_id)
    if user is None:
        raise UnauthorizedException("User not found")
    return user


def get_current_actor(
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> Actor:
    """The caller as seen by the authorization policy."""
    vendor_id = None
    if user.role == UserRole.VENDOR:
        vendor = storage.get_vendor_by_user_id(user.id)
        vendor_id = vendor.id if vendor else None
    return Actor(user_id=user.id, role=user.role, vendor_id=vendor_id)


def require_role(*roles: UserRole) -> Callable[..., Actor]:
    """
    Dependency factory restricting an endpoint to the given roles.

    Example:
        @router.post("", dependencies=[Depends(require_role(UserRole.VENDOR))])
    """
    def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise ForbiddenException(
                f"Access denied. Required role: {', '.join(r.value for r in roles)}"
            )
        return actor

    return checker


# Domain services

def get_auth_service(
    storage: Storage = Depends(get_storage),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        storage,
        hasher,
        token_secret=settings.jwt_secret,
        token_ttl_minutes=settings.jwt_expiration_minutes,
        token_algorithm=settings.jwt_algorithm,
    )


def get_vendor_service(storage: Storage = Depends(get_storage)) -> VendorService:
    return VendorService(storage)


def get_catalog_service(storage: Storage = Depends(get_storage)) -> CatalogService:
    return CatalogService(storage)


def get_booking_service(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> BookingService:
    return BookingService(storage, strict_transitions=settings.strict_booking_transitions)


def get_review_service(storage: Storage = Depends(get_storage)) -> ReviewService:
    return ReviewService(storage)


def get_media_service(request: Request) -> MediaService:
    return request.app.state.media_service
