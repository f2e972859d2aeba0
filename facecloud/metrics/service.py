"""Clinic dashboard metrics: period arithmetic, backend aggregation and caching."""

from __future__ import annotations

import asyncio
import calendar
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional, Union

from ..db.client import DatabaseClient
from ..errors import NotFoundError
from .cache import MetricsCache, Timeframe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def as_dates(self) -> Dict[str, str]:
        return {"start": self.start.date().isoformat(), "end": self.end.date().isoformat()}


@dataclass(frozen=True)
class DateRanges:
    current: DateRange
    previous: DateRange


@dataclass(frozen=True)
class ClinicMetrics:
    clinic_id: str
    timeframe: str
    revenue: float
    revenue_change: float
    booking_count: int
    booking_count_change: float
    period: Dict[str, Dict[str, str]]
    clinic: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _day(value: date) -> DateRange:
    return DateRange(datetime.combine(value, time.min), datetime.combine(value, time.max))


def _span(first: date, last: date) -> DateRange:
    return DateRange(datetime.combine(first, time.min), datetime.combine(last, time.max))


def compute_date_ranges(timeframe: Union[Timeframe, str], base: Optional[datetime] = None) -> DateRanges:
    """
    Current and previous calendar period around ``base``.

    Weeks start on Monday. Unknown timeframes fall back to month.
    """
    frame = Timeframe.coerce(timeframe)
    today = (base or datetime.now()).date()

    if frame is Timeframe.DAY:
        return DateRanges(current=_day(today), previous=_day(today - timedelta(days=1)))

    if frame is Timeframe.WEEK:
        monday = today - timedelta(days=today.weekday())
        return DateRanges(
            current=_span(monday, monday + timedelta(days=6)),
            previous=_span(monday - timedelta(days=7), monday - timedelta(days=1)),
        )

    if frame is Timeframe.YEAR:
        return DateRanges(
            current=_span(date(today.year, 1, 1), date(today.year, 12, 31)),
            previous=_span(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)),
        )

    first = today.replace(day=1)
    last = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    previous_last = first - timedelta(days=1)
    return DateRanges(
        current=_span(first, last),
        previous=_span(previous_last.replace(day=1), previous_last),
    )


def percentage_change(current: float, previous: float) -> float:
    """Change relative to ``previous`` as a percentage, rounded to one decimal."""
    if not previous or previous <= 0:
        return 0.0
    return round((current - previous) / previous * 1000) / 10


def _aggregate(rows: Any) -> Dict[str, float]:
    if isinstance(rows, list):
        rows = rows[0] if rows else {}
    rows = rows or {}
    return {
        "revenue": float(rows.get("revenue") or 0),
        "booking_count": int(rows.get("booking_count") or 0),
    }


async def check_clinic_access(db: DatabaseClient, clinic_id: str, user_id: str) -> None:
    allowed = await asyncio.to_thread(
        db.rpc, "check_clinic_access", {"clinic_id": clinic_id, "user_id": user_id}
    )
    if isinstance(allowed, list):
        allowed = allowed[0] if allowed else None
    if not allowed:
        raise NotFoundError("Clinic not found or access denied")


async def fetch_clinic_metrics(
    db: DatabaseClient,
    clinic_id: str,
    timeframe: Union[Timeframe, str] = Timeframe.MONTH,
    *,
    base: Optional[datetime] = None,
) -> ClinicMetrics:
    """Aggregate revenue and bookings for the current and previous period."""
    frame = Timeframe.coerce(timeframe)
    ranges = compute_date_ranges(frame, base)

    def _period(window: DateRange) -> Dict[str, Any]:
        return {
            "p_clinic_id": clinic_id,
            "p_start_date": window.start.isoformat(),
            "p_end_date": window.end.isoformat(),
        }

    clinic, location, current_rows, previous_rows = await asyncio.gather(
        asyncio.to_thread(db.get_clinic, clinic_id),
        asyncio.to_thread(db.get_first_location, clinic_id),
        asyncio.to_thread(db.rpc, "get_clinic_metrics", _period(ranges.current)),
        asyncio.to_thread(db.rpc, "get_clinic_metrics", _period(ranges.previous)),
    )
    current = _aggregate(current_rows)
    previous = _aggregate(previous_rows)

    return ClinicMetrics(
        clinic_id=clinic_id,
        timeframe=frame.value,
        revenue=current["revenue"],
        revenue_change=percentage_change(current["revenue"], previous["revenue"]),
        booking_count=int(current["booking_count"]),
        booking_count_change=percentage_change(current["booking_count"], previous["booking_count"]),
        period={"current": ranges.current.as_dates(), "previous": ranges.previous.as_dates()},
        clinic={"id": clinic.get("id"), "name": clinic.get("name"), "location": location} if clinic else None,
    )


class MetricsService:
    """Access-checked, cached clinic metrics."""

    def __init__(self, db: DatabaseClient, cache: Optional[MetricsCache] = None) -> None:
        self.db = db
        self.cache = cache if cache is not None else MetricsCache()

    async def get_metrics(
        self,
        user_id: str,
        clinic_id: str,
        timeframe: Union[Timeframe, str] = Timeframe.MONTH,
        *,
        force: bool = False,
    ) -> ClinicMetrics:
        # Access is checked per caller; only the aggregate itself is shared.
        await check_clinic_access(self.db, clinic_id, user_id)
        frame = Timeframe.coerce(timeframe)
        return await self.cache.get_or_fetch(
            clinic_id,
            frame,
            lambda: fetch_clinic_metrics(self.db, clinic_id, frame),
            force=force,
        )

    def invalidate(self, clinic_id: Optional[str] = None) -> int:
        removed = self.cache.invalidate(clinic_id)
        logger.debug("Invalidated %d cached metrics entries", removed)
        return removed


_metrics_service: Optional[MetricsService] = None


def get_metrics_service() -> MetricsService:
    global _metrics_service
    if _metrics_service is None:
        from ..db.client import get_admin_database_client

        # Shared across callers: access is checked per user before the cache is read.
        _metrics_service = MetricsService(get_admin_database_client())
    return _metrics_service


__all__ = [
    "ClinicMetrics",
    "DateRange",
    "DateRanges",
    "MetricsService",
    "check_clinic_access",
    "compute_date_ranges",
    "fetch_clinic_metrics",
    "get_metrics_service",
    "percentage_change",
]
