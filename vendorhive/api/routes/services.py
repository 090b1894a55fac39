"""
Services API routes.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import Field

from vendorhive.api.dependencies import get_catalog_service, get_current_actor, require_role
from vendorhive.schemas import CamelModel, Service, TimeSlot, UserRole
from vendorhive.services.authorization import Actor
from vendorhive.services.catalog_service import CatalogService


# Pydantic schemas
class CreateServiceRequest(CamelModel):
    """New service listing; the vendor is taken from the caller."""
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    description: str
    price: str = Field(..., min_length=1, examples=["$50"])
    duration: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    time_slots: List[TimeSlot] = Field(default_factory=list)
    available_dates: List[date] = Field(default_factory=list)
    availability: bool = True


class UpdateServiceRequest(CamelModel):
    """Partial update of a listing; omitted fields are kept."""
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[str] = Field(None, min_length=1)
    duration: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    time_slots: Optional[List[TimeSlot]] = None
    available_dates: Optional[List[date]] = None
    availability: Optional[bool] = None


# Router
router = APIRouter(prefix="/api/services", tags=["services"])

# Required on the record; a null in a partial update means "leave as is"
NON_NULLABLE_FIELDS = ("name", "category", "description", "price", "time_slots", "available_dates", "availability")


@router.post("", response_model=Service, status_code=status.HTTP_201_CREATED)
def create_service(
    request: CreateServiceRequest,
    actor: Actor = Depends(require_role(UserRole.VENDOR)),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Create a service under the caller's vendor profile."""
    return catalog.create_service(actor, request.model_dump())


@router.get("", response_model=List[Service])
def list_services(
    vendor_id: Optional[int] = Query(None, alias="vendorId", description="Filter by vendor"),
    category: Optional[str] = Query(None, description="Filter by category (case-insensitive)"),
    available: Optional[bool] = Query(None, description="Filter by availability"),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    List services.

    Query parameters:
    - vendorId: only this vendor's services
    - category: exact category, ignoring case
    - available: only (un)available services
    """
    return catalog.list_services(vendor_id=vendor_id, category=category, available=available)


@router.get("/{service_id}", response_model=Service)
def get_service(
    service_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
):
    return catalog.get_service(service_id)


@router.put("/{service_id}", response_model=Service)
def update_service(
    service_id: int,
    request: UpdateServiceRequest,
    actor: Actor = Depends(get_current_actor),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Update a service; only the owning vendor may do this."""
    changes = request.model_dump(exclude_unset=True)
    for field in NON_NULLABLE_FIELDS:
        if field in changes and changes[field] is None:
            del changes[field]
    return catalog.update_service(actor, service_id, changes)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    actor: Actor = Depends(get_current_actor),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Delete a service; only the owning vendor may do this."""
    catalog.delete_service(actor, service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
