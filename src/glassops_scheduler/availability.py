"""
Technician availability module.

`AvailabilityResolver` is the single source of truth for "is this technician free
during this window". It reconciles three independent sources:
- recurring weekly working hours (WorkingHoursStore)
- ad-hoc time off (TimeOffStore)
- committed, non-terminal bookings (BookingSource)

Checks run in that order and stop at the first conflict, which also decides the
reason reported when several apply. The resolver never mutates anything.
"""

import logging
from datetime import date, tzinfo
from typing import List, Sequence, Tuple

from .collaborators import BookingSource
from .intervals import day_span, free_windows, validate_interval, working_windows
from .models import AvailabilityResult, Interval, UnavailableReason
from .stores import TimeOffStore, WorkingHoursStore

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    def __init__(
        self,
        working_hours: WorkingHoursStore,
        time_off: TimeOffStore,
        bookings: BookingSource,
        tz: tzinfo,
    ):
        self.working_hours = working_hours
        self.time_off = time_off
        self.bookings = bookings
        self.tz = tz

    def check(self, technician_id: str, company_id: str, candidate: Interval) -> AvailabilityResult:
        """
        Decides whether the technician is free for the whole candidate window.

        A candidate must fit inside a single working-hours template of its local
        weekday; windows spanning midnight are therefore always rejected. Any
        overlap with time off or a booking blocks, full containment is not needed.

        Args:
            technician_id: The technician to check.
            company_id: The requesting tenant.
            candidate: The window to test (timezone-aware, end after start).

        Returns:
            AvailabilityResult with the first conflict found, if any.

        Raises:
            NotFound: technician unknown in this company.
            InvalidArgument: malformed candidate.
        """
        candidate = validate_interval(candidate)

        # 1. Working hours (cheapest rejection)
        entries = self.working_hours.list_for_technician(technician_id, company_id)
        local_day = candidate.start.astimezone(self.tz).date()
        windows = working_windows(entries, local_day, self.tz)
        if not any(window.contains(candidate) for window in windows):
            return AvailabilityResult(available=False, reason=UnavailableReason.OUTSIDE_WORKING_HOURS)

        # 2. Time off
        for entry in self.time_off.list_for_technician(
            technician_id, company_id, from_=candidate.start, to=candidate.end
        ):
            if entry.interval.overlaps(candidate):
                return AvailabilityResult(
                    available=False,
                    reason=UnavailableReason.TIME_OFF,
                    conflicting_entity=entry,
                )

        # 3. Existing bookings
        for booking in self.bookings.list_active(technician_id, start=candidate.start, end=candidate.end):
            if booking.occupies_time and booking.interval.overlaps(candidate):
                return AvailabilityResult(
                    available=False,
                    reason=UnavailableReason.ALREADY_BOOKED,
                    conflicting_entity=booking,
                )

        return AvailabilityResult(available=True)

    def free_windows(self, technician_id: str, company_id: str, day: date) -> List[Interval]:
        """
        The free sub-intervals of one local calendar day: working-hours windows
        minus time off and active bookings, sorted by start.
        """
        return self.free_windows_by_day(technician_id, company_id, [day])[0][1]

    def free_windows_by_day(
        self, technician_id: str, company_id: str, days: Sequence[date]
    ) -> List[Tuple[date, List[Interval]]]:
        """
        Free windows for several local days, in the order given.

        Templates, time off and bookings are each loaded once for the whole
        range, so a multi-day search costs the same number of lookups as a
        single day.
        """
        entries = self.working_hours.list_for_technician(technician_id, company_id)
        per_day = [(day, working_windows(entries, day, self.tz)) for day in days]
        if not any(windows for _, windows in per_day):
            return [(day, []) for day, _ in per_day]

        spans = [day_span(day, self.tz) for day in days]
        lower = min(s.start for s in spans)
        upper = max(s.end for s in spans)
        busy = [
            entry.interval
            for entry in self.time_off.list_for_technician(technician_id, company_id, from_=lower, to=upper)
        ]
        busy.extend(
            booking.interval
            for booking in self.bookings.list_active(technician_id, start=lower, end=upper)
            if booking.occupies_time
        )
        return [(day, free_windows(windows, busy) if windows else []) for day, windows in per_day]
