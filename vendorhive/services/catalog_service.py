"""
Service catalog: vendors' listings (create, browse, edit, delete).
"""
from typing import Any, Dict, List, Optional

from vendorhive.api.middleware.error_handler import NotFoundException
from vendorhive.lib.logging import get_logger, log_with_context
from vendorhive.lib.metrics import MetricsCollector, get_metrics_collector
from vendorhive.schemas import NewService, Service
from vendorhive.services.authorization import Actor, Capability, authorize
from vendorhive.storage.base import Storage

logger = get_logger(__name__)

# Never taken from a client payload
PROTECTED_SERVICE_FIELDS = frozenset({"id", "vendor_id", "created_at"})


class CatalogService:
    """Service listing operations."""

    def __init__(self, storage: Storage, metrics: Optional[MetricsCollector] = None):
        self.storage = storage
        self.metrics = metrics or get_metrics_collector()

    def create_service(self, actor: Actor, data: Dict[str, Any]) -> Service:
        """Create a listing under the caller's own vendor profile."""
        authorize(actor, Capability.CREATE_SERVICE)
        vendor = self.storage.get_vendor_by_user_id(actor.user_id)
        if vendor is None:
            raise NotFoundException("Vendor profile")

        fields = {k: v for k, v in data.items() if k not in PROTECTED_SERVICE_FIELDS}
        service = self.storage.create_service(NewService(vendor_id=vendor.id, **fields))
        log_with_context(
            logger, "info", "Service created",
            service_id=service.id,
            vendor_id=vendor.id,
        )
        return service

    def get_service(self, service_id: int) -> Service:
        service = self.storage.get_service(service_id)
        if service is None:
            raise NotFoundException("Service", service_id)
        return service

    def list_services(
        self,
        vendor_id: Optional[int] = None,
        category: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> List[Service]:
        return self.storage.list_services(vendor_id=vendor_id, category=category, available=available)

    def update_service(self, actor: Actor, service_id: int, changes: Dict[str, Any]) -> Service:
        """Edit a listing; only its owning vendor may do so."""
        service = self.get_service(service_id)
        authorize(actor, Capability.MANAGE_SERVICE, service)

        changes = {k: v for k, v in changes.items() if k not in PROTECTED_SERVICE_FIELDS}
        updated = self.storage.update_service(service_id, changes)
        if updated is None:
            raise NotFoundException("Service", service_id)
        return updated

    def delete_service(self, actor: Actor, service_id: int) -> None:
        service = self.get_service(service_id)
        authorize(actor, Capability.MANAGE_SERVICE, service)

        if not self.storage.delete_service(service_id):
            raise NotFoundException("Service", service_id)
        self.metrics.increment_services_deleted()
        log_with_context(
            logger, "info", "Service deleted",
            service_id=service_id,
            vendor_id=service.vendor_id,
        )
