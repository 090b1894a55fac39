"""
Prometheus-compatible metrics for observability.

Tracks marketplace activity:
- Registrations (by role)
- Bookings created and status updates (by status)
- Reviews created (by rating)
- Service deletions

Usage:
    from vendorhive.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_registrations(role="vendor")
    metrics.increment_booking_status(status="confirmed")

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Optional, Tuple
from threading import Lock


LabelKey = Tuple[Tuple[str, str], ...]


class MetricsCollector:
    """
    Prometheus-style metrics collector for VendorHive.

    Counters:
    - users_registered_total: New accounts (labels: role)
    - bookings_created_total: New bookings
    - booking_status_updates_total: Status changes (labels: status)
    - reviews_created_total: New reviews (labels: rating)
    - services_deleted_total: Removed service listings

    Thread-safe for concurrent increments.
    """

    HELP = {
        "users_registered_total": "Total user registrations",
        "bookings_created_total": "Total bookings created",
        "booking_status_updates_total": "Total booking status updates",
        "reviews_created_total": "Total reviews submitted",
        "services_deleted_total": "Total services deleted",
    }

    def __init__(self):
        self._lock = Lock()

        # Counters: key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, LabelKey], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, LabelKey]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Dict[str, str], amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def get_counter_value(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Get current value of counter."""
        key = self._get_counter_key(metric_name, labels or {})
        with self._lock:
            return self._counters.get(key, 0)

    def increment_registrations(self, role: str, amount: int = 1):
        self._increment("users_registered_total", {"role": role.lower()}, amount)

    def increment_bookings_created(self, amount: int = 1):
        self._increment("bookings_created_total", {}, amount)

    def increment_booking_status(self, status: str, amount: int = 1):
        self._increment("booking_status_updates_total", {"status": status.lower()}, amount)

    def increment_reviews(self, rating: int, amount: int = 1):
        self._increment("reviews_created_total", {"rating": str(rating)}, amount)

    def increment_services_deleted(self, amount: int = 1):
        self._increment("services_deleted_total", {}, amount)

    def export_prometheus(self) -> str:
        """
        Render all counters in the Prometheus text exposition format.

        Returns:
            Metrics text, or an empty string when nothing has been recorded
        """
        with self._lock:
            snapshot = dict(self._counters)

        if not snapshot:
            return ""

        lines = []
        for metric_name in sorted({name for name, _ in snapshot}):
            lines.append(f"# HELP {metric_name} {self.HELP.get(metric_name, metric_name)}")
            lines.append(f"# TYPE {metric_name} counter")
            for (name, labels), value in sorted(snapshot.items()):
                if name != metric_name:
                    continue
                if labels:
                    label_text = ",".join(f'{k}="{v}"' for k, v in labels)
                    lines.append(f"{name}{{{label_text}}} {value}")
                else:
                    lines.append(f"{name} {value}")
        return "\n".join(lines) + "\n"

    def reset(self):
        """Clear all counters (tests only)."""
        with self._lock:
            self._counters.clear()


_metrics_collector: Optional[MetricsCollector] = None
_metrics_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector singleton."""
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics() -> None:
    """Reset global metrics collector (for testing)."""
    with _metrics_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset()
