"""
Forward slot search and fleet-wide availability scans.

Both are built on AvailabilityResolver, so a slot returned by the search is
always one the resolver accepts, and a fleet scan never disagrees with a
single-technician check for the same instant.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from .availability import AvailabilityResolver
from .collaborators import TechnicianDirectory
from .errors import InvalidArgument
from .intervals import not_before, validate_interval
from .models import Interval, ServiceCategory, TechnicianAvailability

logger = logging.getLogger(__name__)

# Bounds for the forward search horizon (caps worst-case scan cost)
MIN_SEARCH_DAYS = 1
MAX_SEARCH_DAYS = 30
DEFAULT_SEARCH_DAYS = 7

DEFAULT_DURATION_MINUTES = 60
SERVICE_DURATIONS: Dict[ServiceCategory, int] = {
    ServiceCategory.REPAIR: 60,
    ServiceCategory.REPLACEMENT: 120,
    ServiceCategory.EMERGENCY: 90,
    ServiceCategory.GENERAL: DEFAULT_DURATION_MINUTES,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def classify_service(service_type: Optional[str]) -> ServiceCategory:
    """
    Maps a free-text service description onto a category.

    Case-insensitive substring match checked in order repair, replacement,
    emergency; anything else is GENERAL.
    """
    if not service_type:
        return ServiceCategory.GENERAL
    lowered = service_type.lower()
    for category in (ServiceCategory.REPAIR, ServiceCategory.REPLACEMENT, ServiceCategory.EMERGENCY):
        if category.value in lowered:
            return category
    return ServiceCategory.GENERAL


def estimate_duration_minutes(service_type: Optional[str]) -> int:
    """Default appointment length for a service description."""
    return SERVICE_DURATIONS[classify_service(service_type)]


class SlotSearchEngine:
    """Earliest-fit search across a technician's calendar."""

    def __init__(self, resolver: AvailabilityResolver, clock: Callable[[], datetime] = _utcnow):
        self.resolver = resolver
        self.clock = clock

    def find_next(
        self,
        technician_id: str,
        company_id: str,
        start_date: date,
        duration_minutes: int,
        max_days_to_search: int = DEFAULT_SEARCH_DAYS,
    ) -> Optional[Interval]:
        """
        Finds the first open interval of exactly `duration_minutes`.

        Days are scanned in increasing order starting at `start_date`; within a
        day the earliest free sub-interval that is long enough wins. Nothing
        before the evaluation instant is ever returned.

        Args:
            technician_id: The technician to search.
            company_id: The requesting tenant.
            start_date: First local calendar day to consider.
            duration_minutes: Required length, > 0.
            max_days_to_search: Horizon in days, within [1, 30].

        Returns:
            The slot, or None when nothing in the horizon fits.

        Raises:
            InvalidArgument: non-positive duration or horizon out of bounds.
            NotFound: technician unknown in this company.
        """
        if duration_minutes <= 0:
            raise InvalidArgument("duration", "duration must be a positive number")
        if not MIN_SEARCH_DAYS <= max_days_to_search <= MAX_SEARCH_DAYS:
            raise InvalidArgument(
                "days_to_search",
                f"days_to_search must be a positive number and not exceed {MAX_SEARCH_DAYS}",
            )
        needed = timedelta(minutes=duration_minutes)
        now = self.clock()

        days = [start_date + timedelta(days=offset) for offset in range(max_days_to_search)]
        by_day = self.resolver.free_windows_by_day(technician_id, company_id, days)
        for offset, (_, free) in enumerate(by_day):
            for window in not_before(free, now):
                if window.duration >= needed:
                    slot = Interval(start=window.start, end=window.start + needed)
                    logger.debug("Found slot %s for technician %s after %d day(s)", slot, technician_id, offset + 1)
                    return slot

        logger.debug(
            "No %d-minute slot for technician %s within %d day(s) of %s",
            duration_minutes, technician_id, max_days_to_search, start_date,
        )
        return None


class FleetAvailabilityScanner:
    """Checks one candidate interval against every technician of a company."""

    def __init__(self, directory: TechnicianDirectory, resolver: AvailabilityResolver):
        self.directory = directory
        self.resolver = resolver

    def scan_company(self, company_id: str, candidate: Interval) -> List[TechnicianAvailability]:
        """
        One entry per technician, in the directory's listing order.

        Callers typically take the first available technician; no skill matching
        or load balancing happens here.
        """
        candidate = validate_interval(candidate)
        results = []
        for technician in self.directory.list_for_company(company_id):
            verdict = self.resolver.check(technician.id, company_id, candidate)
            results.append(TechnicianAvailability(
                technician_id=technician.id,
                full_name=technician.full_name,
                available=verdict.available,
                reason=verdict.reason,
            ))
        logger.debug(
            "Fleet scan for company %s at %s: %d of %d available",
            company_id, candidate, sum(r.available for r in results), len(results),
        )
        return results

    def first_available(self, company_id: str, candidate: Interval) -> Optional[TechnicianAvailability]:
        """The earliest-listed available technician, or None."""
        for result in self.scan_company(company_id, candidate):
            if result.available:
                return result
        return None
