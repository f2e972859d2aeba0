"""Dashboard metrics: TTL cache and the clinic metrics service."""

from .cache import MetricsCache, MetricsCacheEntry, Timeframe
from .service import ClinicMetrics, MetricsService, compute_date_ranges, percentage_change

__all__ = [
    "ClinicMetrics",
    "MetricsCache",
    "MetricsCacheEntry",
    "MetricsService",
    "Timeframe",
    "compute_date_ranges",
    "percentage_change",
]
