"""Account service: registration, password login and profile management.

Handles the identity flow:
1. Register: validate uniqueness, hash the password, create the user
   (and the vendor profile for vendor accounts), issue a JWT
2. Login: verify email + password, issue a JWT
3. Profile: read and update the caller's own account
"""
from datetime import timedelta
from typing import Any, Dict, Optional

from vendorhive.api.middleware.error_handler import (
    BadRequestException,
    NotFoundException,
    UnauthorizedException,
)
from vendorhive.lib.jwt import create_access_token
from vendorhive.lib.logging import get_logger, log_with_context
from vendorhive.lib.metrics import MetricsCollector, get_metrics_collector
from vendorhive.lib.passwords import PasswordHasher
from vendorhive.schemas import NewUser, NewVendor, User, UserRole
from vendorhive.storage.base import DuplicateRecordError, Storage

logger = get_logger(__name__)

DEFAULT_VENDOR_CATEGORY = "General"


def normalize_email(email: str) -> str:
    """Emails are stored and looked up lowercased, so any casing of an address finds the same account."""
    return email.strip().lower()


class AuthService:
    """Registration, login and profile operations.

    Tokens are signed with ``token_secret`` using ``token_algorithm`` and live
    for ``token_ttl_minutes``.
    """

    def __init__(
        self,
        storage: Storage,
        hasher: PasswordHasher,
        token_secret: str,
        token_ttl_minutes: int,
        token_algorithm: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.storage = storage
        self.hasher = hasher
        self.token_secret = token_secret
        self.token_ttl = timedelta(minutes=token_ttl_minutes)
        self.token_algorithm = token_algorithm
        self.metrics = metrics or get_metrics_collector()

    def issue_token(self, user: User) -> str:
        return create_access_token(
            user_id=user.id,
            role=UserRole(user.role).value,
            expires_delta=self.token_ttl,
            secret=self.token_secret,
            algorithm=self.token_algorithm,
        )

    def _ensure_unique(self, email: Optional[str], username: Optional[str], exclude_id: Optional[int] = None):
        if email is not None:
            existing = self.storage.get_user_by_email(email)
            if existing and existing.id != exclude_id:
                raise BadRequestException("Email already in use")
        if username is not None:
            existing = self.storage.get_user_by_username(username)
            if existing and existing.id != exclude_id:
                raise BadRequestException("Username already taken")

    def register(
        self,
        name: str,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.USER,
        profile: Optional[Dict[str, Any]] = None,
        vendor: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create an account and return ``{"user": UserPublic, "token": str}``.

        For vendor accounts a vendor profile is created from ``vendor``;
        missing business name and category fall back to "<name>'s Business"
        and "General".

        Raises:
            BadRequestException: email or username already registered
        """
        email = normalize_email(email)
        self._ensure_unique(email, username)

        try:
            user = self.storage.create_user(NewUser(
                name=name,
                username=username,
                email=email,
                password=self.hasher.hash(password),
                role=role,
                **(profile or {}),
            ))
        except DuplicateRecordError as e:
            raise BadRequestException(str(e)) from e

        if user.role == UserRole.VENDOR:
            vendor = vendor or {}
            self.storage.create_vendor(NewVendor(
                user_id=user.id,
                business_name=vendor.get("business_name") or f"{name}'s Business",
                category=vendor.get("category") or DEFAULT_VENDOR_CATEGORY,
                description=vendor.get("description") or "",
                service_tags=vendor.get("service_tags"),
                business_hours=vendor.get("business_hours"),
                cover_image=vendor.get("cover_image"),
            ))

        self.metrics.increment_registrations(role=user.role.value)
        log_with_context(
            logger, "info", "User registered",
            user_id=user.id,
            role=user.role.value,
        )
        return {"user": user.to_public(), "token": self.issue_token(user)}

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Verify credentials and return ``{"user": UserPublic, "token": str}``.

        Raises:
            UnauthorizedException: unknown email or wrong password
        """
        email = normalize_email(email)
        user = self.storage.get_user_by_email(email)
        if user is None or not self.hasher.verify(password, user.password):
            log_with_context(logger, "warning", "Failed login attempt", email=email)
            raise UnauthorizedException("Invalid credentials")

        log_with_context(logger, "info", "User logged in", user_id=user.id)
        return {"user": user.to_public(), "token": self.issue_token(user)}

    def get_profile(self, user_id: int) -> Dict[str, Any]:
        """Return ``{"user": UserPublic, "vendor_profile": Vendor | None}``."""
        user = self.storage.get_user(user_id)
        if user is None:
            raise NotFoundException("User", user_id)
        vendor = self.storage.get_vendor_by_user_id(user_id) if user.role == UserRole.VENDOR else None
        return {"user": user.to_public(), "vendor_profile": vendor}

    def update_profile(self, user_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Apply account changes; a new password is re-hashed before storing.

        Raises:
            BadRequestException: email or username belongs to another user
            NotFoundException: the account no longer exists
        """
        changes = dict(changes)
        if changes.get("email"):
            changes["email"] = normalize_email(changes["email"])
        self._ensure_unique(changes.get("email"), changes.get("username"), exclude_id=user_id)
        if changes.get("password"):
            changes["password"] = self.hasher.hash(changes["password"])

        try:
            user = self.storage.update_user(user_id, changes)
        except DuplicateRecordError as e:
            raise BadRequestException(str(e)) from e
        if user is None:
            raise NotFoundException("User", user_id)

        log_with_context(
            logger, "info", "Profile updated",
            user_id=user_id,
            fields=sorted(k for k in changes if k != "password"),
        )
        return self.get_profile(user_id)
