"""
Vendor routes: discovery, detail pages and the vendor's own profile.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import AliasChoices, Field

from vendorhive.api.dependencies import get_vendor_service, require_role
from vendorhive.schemas import (
    CamelModel,
    ReviewWithUser,
    Service,
    UserRole,
    Vendor,
    VendorDetail,
    VendorWithUser,
)
from vendorhive.services.authorization import Actor
from vendorhive.services.vendor_service import VendorService


class UpdateVendorRequest(CamelModel):
    """Business fields a vendor may edit. Rating and review count are not accepted."""
    business_name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    service_tags: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("services", "serviceTags", "service_tags"),
    )
    business_hours: Optional[Dict[str, Any]] = None
    cover_image: Optional[str] = None


router = APIRouter(prefix="/api/vendors", tags=["vendors"])


@router.get("", response_model=List[VendorWithUser])
def list_vendors(
    search: Optional[str] = Query(None, description="Case-insensitive text to match"),
    vendor_service: VendorService = Depends(get_vendor_service),
):
    """
    List vendors with their owning user.

    Query parameters:
    - search: matched against business name, category, description and owner name
    """
    return vendor_service.list_vendors(search)


@router.put("/me", response_model=Vendor)
def update_my_vendor(
    request: UpdateVendorRequest,
    actor: Actor = Depends(require_role(UserRole.VENDOR)),
    vendor_service: VendorService = Depends(get_vendor_service),
):
    """Update the caller's vendor profile."""
    changes = request.model_dump(exclude_unset=True)
    for required in ("business_name", "category"):
        if changes.get(required) is None:
            changes.pop(required, None)
    if "description" in changes and changes["description"] is None:
        changes["description"] = ""
    return vendor_service.update_own_vendor(actor, changes)


@router.get("/{vendor_id}", response_model=VendorDetail)
def get_vendor(
    vendor_id: int,
    vendor_service: VendorService = Depends(get_vendor_service),
):
    """Vendor with its owner, services and reviews."""
    return vendor_service.get_vendor_detail(vendor_id)


@router.get("/{vendor_id}/services", response_model=List[Service])
def list_vendor_services(
    vendor_id: int,
    vendor_service: VendorService = Depends(get_vendor_service),
):
    return vendor_service.list_vendor_services(vendor_id)


@router.get("/{vendor_id}/reviews", response_model=List[ReviewWithUser])
def list_vendor_reviews(
    vendor_id: int,
    vendor_service: VendorService = Depends(get_vendor_service),
):
    """Reviews for a vendor, newest first."""
    return vendor_service.list_vendor_reviews(vendor_id)
