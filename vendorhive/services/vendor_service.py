"""
Vendor discovery and vendor profile management.
"""
from typing import Any, Dict, List, Optional

from vendorhive.api.middleware.error_handler import NotFoundException
from vendorhive.lib.logging import get_logger
from vendorhive.schemas import (
    Review,
    ReviewWithUser,
    Service,
    Vendor,
    VendorDetail,
    VendorWithUser,
)
from vendorhive.services.authorization import Actor, Capability, authorize
from vendorhive.storage.base import DERIVED_VENDOR_FIELDS, Storage

logger = get_logger(__name__)


class VendorService:
    """Read side of vendors (listing, search, detail) plus profile updates."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def _with_user(self, vendor: Vendor) -> Optional[VendorWithUser]:
        user = self.storage.get_user(vendor.user_id)
        if user is None:
            return None
        return VendorWithUser(**vendor.model_dump(), rating_total=vendor.rating_total, user=user.to_public())

    def _require_vendor(self, vendor_id: int) -> Vendor:
        vendor = self.storage.get_vendor(vendor_id)
        if vendor is None:
            raise NotFoundException("Vendor", vendor_id)
        return vendor

    def list_vendors(self, search: Optional[str] = None) -> List[VendorWithUser]:
        """All vendors, or those matching ``search`` (case-insensitive substring)."""
        if search:
            vendors = self.storage.search_vendors(search)
        else:
            vendors = self.storage.list_vendors()
        results = [self._with_user(v) for v in vendors]
        return [v for v in results if v is not None]

    def get_vendor_detail(self, vendor_id: int) -> VendorDetail:
        """Vendor with its owner, its service listings and its reviews."""
        vendor = self._require_vendor(vendor_id)
        with_user = self._with_user(vendor)
        if with_user is None:
            raise NotFoundException("Vendor", vendor_id)
        return VendorDetail(
            **with_user.model_dump(exclude={"user"}),
            user=with_user.user,
            services=self.storage.list_services(vendor_id=vendor_id),
            reviews=self._reviews_with_users(self.storage.list_reviews_by_vendor(vendor_id)),
        )

    def list_vendor_services(self, vendor_id: int) -> List[Service]:
        self._require_vendor(vendor_id)
        return self.storage.list_services(vendor_id=vendor_id)

    def list_vendor_reviews(self, vendor_id: int) -> List[ReviewWithUser]:
        """Reviews newest first, each with its author's public record."""
        self._require_vendor(vendor_id)
        return self._reviews_with_users(self.storage.list_reviews_by_vendor(vendor_id))

    def _reviews_with_users(self, reviews: List[Review]) -> List[ReviewWithUser]:
        results = []
        for review in reviews:
            author = self.storage.get_user(review.user_id)
            if author is not None:
                results.append(ReviewWithUser(**review.model_dump(), user=author.to_public()))
        return results

    def get_own_vendor(self, actor: Actor) -> Vendor:
        vendor = self.storage.get_vendor_by_user_id(actor.user_id)
        if vendor is None:
            raise NotFoundException("Vendor profile")
        return vendor

    def update_own_vendor(self, actor: Actor, changes: Dict[str, Any]) -> Vendor:
        """Update the caller's business fields; rating and counts are never writable."""
        authorize(actor, Capability.UPDATE_VENDOR_PROFILE)
        vendor = self.get_own_vendor(actor)
        changes = {k: v for k, v in changes.items() if k not in DERIVED_VENDOR_FIELDS}
        updated = self.storage.update_vendor(vendor.id, changes)
        if updated is None:
            raise NotFoundException("Vendor profile")
        logger.info(
            "Vendor profile updated",
            extra={"vendor_id": vendor.id, "fields": sorted(changes)},
        )
        return updated
