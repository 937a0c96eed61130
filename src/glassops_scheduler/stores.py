"""
Working-hours and time-off stores.

Both stores keep one invariant: within one technician's namespace, stored
intervals are pairwise disjoint. Every add/update validates against the sibling
set and commits while holding the technician's lock, so conflict detection
elsewhere can stay a linear scan.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .collaborators import TechnicianDirectory, require_technician
from .db import models as db_models
from .errors import InvalidArgument, NotFound, Overlap
from .intervals import ensure_aware
from .locks import TechnicianLocks, technician_locks
from .models import (
    Interval, TimeOffEntry, TimeOffPatch, WorkingHoursEntry, WorkingHoursPatch
)

logger = logging.getLogger(__name__)

SCHEDULE_NOT_FOUND = "Schedule entry not found or access denied"
TIME_OFF_NOT_FOUND = "Time off entry not found or access denied"

# Times of day are compared by anchoring them on one arbitrary date
_REFERENCE_DAY = date(2000, 1, 2)


def _template_interval(start_time: time, end_time: time) -> Interval:
    return Interval(
        start=datetime.combine(_REFERENCE_DAY, start_time.replace(tzinfo=None), tzinfo=timezone.utc),
        end=datetime.combine(_REFERENCE_DAY, end_time.replace(tzinfo=None), tzinfo=timezone.utc),
    )


def _validate_template(day_of_week: int, start_time: time, end_time: time) -> None:
    if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise InvalidArgument("day_of_week", "day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    if start_time.replace(tzinfo=None) >= end_time.replace(tzinfo=None):
        raise InvalidArgument("end_time", "end_time must be after start_time")


def _validate_period(start_datetime: datetime, end_datetime: datetime) -> None:
    ensure_aware(start_datetime, "start_datetime")
    ensure_aware(end_datetime, "end_datetime")
    if start_datetime >= end_datetime:
        raise InvalidArgument("end_datetime", "end_datetime must be after start_datetime")


class WorkingHoursStore:
    """Recurring weekly templates, bucketed by technician and weekday."""

    def __init__(self, db: Session, directory: TechnicianDirectory, locks: TechnicianLocks = technician_locks):
        self.db = db
        self.directory = directory
        self.locks = locks

    def _rows(self, technician_id: str, day_of_week: Optional[int] = None) -> List[db_models.TechnicianSchedule]:
        stmt = select(db_models.TechnicianSchedule).where(
            db_models.TechnicianSchedule.technician_id == technician_id
        )
        if day_of_week is not None:
            stmt = stmt.where(db_models.TechnicianSchedule.day_of_week == day_of_week)
        stmt = stmt.order_by(
            db_models.TechnicianSchedule.day_of_week,
            db_models.TechnicianSchedule.start_time,
            db_models.TechnicianSchedule.id,
        )
        return list(self.db.execute(stmt).scalars().all())

    def _owned_row(self, entry_id: int, technician_id: str, company_id: str) -> db_models.TechnicianSchedule:
        stmt = (
            select(db_models.TechnicianSchedule)
            .join(db_models.Technician, db_models.Technician.id == db_models.TechnicianSchedule.technician_id)
            .where(
                db_models.TechnicianSchedule.id == entry_id,
                db_models.TechnicianSchedule.technician_id == technician_id,
                db_models.Technician.company_id == company_id,
            )
        )
        row = self.db.execute(stmt).scalars().first()
        if row is None:
            raise NotFound(SCHEDULE_NOT_FOUND)
        return row

    @staticmethod
    def _check_overlap(
        start_time: time,
        end_time: time,
        siblings: Iterable[db_models.TechnicianSchedule],
        message: str,
    ) -> None:
        candidate = _template_interval(start_time, end_time)
        for sibling in siblings:
            if candidate.overlaps(_template_interval(sibling.start_time, sibling.end_time)):
                raise Overlap(message, conflicting_entry=WorkingHoursEntry.model_validate(sibling))

    def list_for_technician(self, technician_id: str, company_id: str) -> List[WorkingHoursEntry]:
        """All templates for a technician ordered by (day_of_week, start_time)."""
        require_technician(self.directory, technician_id, company_id)
        return [WorkingHoursEntry.model_validate(row) for row in self._rows(technician_id)]

    def add(
        self,
        technician_id: str,
        company_id: str,
        day_of_week: int,
        start_time: time,
        end_time: time,
    ) -> WorkingHoursEntry:
        """
        Adds a working-hours template.

        Raises:
            NotFound: technician unknown in this company.
            InvalidArgument: weekday outside [0, 6] or start not before end.
            Overlap: the range overlaps another template on the same weekday.
        """
        require_technician(self.directory, technician_id, company_id)
        _validate_template(day_of_week, start_time, end_time)

        with self.locks.hold(technician_id):
            try:
                self._check_overlap(
                    start_time, end_time,
                    self._rows(technician_id, day_of_week),
                    "The new schedule overlaps with existing schedules",
                )
            except Overlap:
                logger.warning("Rejected overlapping schedule for technician %s on day %s", technician_id, day_of_week)
                raise

            row = db_models.TechnicianSchedule(
                technician_id=technician_id,
                day_of_week=day_of_week,
                start_time=start_time.replace(tzinfo=None),
                end_time=end_time.replace(tzinfo=None),
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)

        logger.info("Added schedule entry %s for technician %s", row.id, technician_id)
        return WorkingHoursEntry.model_validate(row)

    def update(
        self,
        entry_id: int,
        technician_id: str,
        company_id: str,
        patch: WorkingHoursPatch,
    ) -> WorkingHoursEntry:
        """
        Applies `patch` to an existing template, re-validating the merged result
        against every other template of the target weekday.
        """
        require_technician(self.directory, technician_id, company_id)
        with self.locks.hold(technician_id):
            row = self._owned_row(entry_id, technician_id, company_id)

            day_of_week = patch.day_of_week if patch.day_of_week is not None else row.day_of_week
            start_time = patch.start_time if patch.start_time is not None else row.start_time
            end_time = patch.end_time if patch.end_time is not None else row.end_time
            _validate_template(day_of_week, start_time, end_time)

            siblings = [s for s in self._rows(technician_id, day_of_week) if s.id != row.id]
            try:
                self._check_overlap(
                    start_time, end_time, siblings,
                    "The updated schedule overlaps with existing schedules",
                )
            except Overlap:
                logger.warning("Rejected overlapping update of schedule entry %s", entry_id)
                raise

            row.day_of_week = day_of_week
            row.start_time = start_time.replace(tzinfo=None)
            row.end_time = end_time.replace(tzinfo=None)
            self.db.commit()
            self.db.refresh(row)

        logger.info("Updated schedule entry %s for technician %s", entry_id, technician_id)
        return WorkingHoursEntry.model_validate(row)

    def remove(self, entry_id: int, technician_id: str, company_id: str) -> None:
        require_technician(self.directory, technician_id, company_id)
        with self.locks.hold(technician_id):
            row = self._owned_row(entry_id, technician_id, company_id)
            self.db.delete(row)
            self.db.commit()
        logger.info("Deleted schedule entry %s for technician %s", entry_id, technician_id)


class TimeOffStore:
    """Ad-hoc absence periods, keyed purely on date-time overlap."""

    def __init__(self, db: Session, directory: TechnicianDirectory, locks: TechnicianLocks = technician_locks):
        self.db = db
        self.directory = directory
        self.locks = locks

    def _rows(
        self,
        technician_id: str,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> List[db_models.TechnicianTimeOff]:
        stmt = select(db_models.TechnicianTimeOff).where(
            db_models.TechnicianTimeOff.technician_id == technician_id
        )
        # Same half-open rule as Interval.overlaps
        if from_ is not None:
            stmt = stmt.where(db_models.TechnicianTimeOff.end_datetime > from_)
        if to is not None:
            stmt = stmt.where(db_models.TechnicianTimeOff.start_datetime < to)
        stmt = stmt.order_by(db_models.TechnicianTimeOff.start_datetime, db_models.TechnicianTimeOff.id)
        return list(self.db.execute(stmt).scalars().all())

    def _owned_row(self, entry_id: int, technician_id: str, company_id: str) -> db_models.TechnicianTimeOff:
        stmt = (
            select(db_models.TechnicianTimeOff)
            .join(db_models.Technician, db_models.Technician.id == db_models.TechnicianTimeOff.technician_id)
            .where(
                db_models.TechnicianTimeOff.id == entry_id,
                db_models.TechnicianTimeOff.technician_id == technician_id,
                db_models.Technician.company_id == company_id,
            )
        )
        row = self.db.execute(stmt).scalars().first()
        if row is None:
            raise NotFound(TIME_OFF_NOT_FOUND)
        return row

    @staticmethod
    def _check_overlap(
        start_datetime: datetime,
        end_datetime: datetime,
        siblings: Iterable[db_models.TechnicianTimeOff],
        message: str,
    ) -> None:
        candidate = Interval(start=start_datetime, end=end_datetime)
        for sibling in siblings:
            entry = TimeOffEntry.model_validate(sibling)
            if candidate.overlaps(entry.interval):
                raise Overlap(message, conflicting_entry=entry)

    def list_for_technician(
        self,
        technician_id: str,
        company_id: str,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> List[TimeOffEntry]:
        """
        Time off for a technician ordered by start.

        With `from_` and/or `to`, only entries intersecting that window are
        returned; an open end means unbounded on that side.
        """
        require_technician(self.directory, technician_id, company_id)
        if from_ is not None:
            ensure_aware(from_, "start_date")
        if to is not None:
            ensure_aware(to, "end_date")
        if from_ is not None and to is not None and to < from_:
            raise InvalidArgument("end_date", "end_date must not be before start_date")
        return [TimeOffEntry.model_validate(row) for row in self._rows(technician_id, from_, to)]

    def add(
        self,
        technician_id: str,
        company_id: str,
        start_datetime: datetime,
        end_datetime: datetime,
        reason: Optional[str] = None,
    ) -> TimeOffEntry:
        """
        Adds a time-off period.

        Raises:
            NotFound: technician unknown in this company.
            InvalidArgument: naive datetimes or start not before end.
            Overlap: the period overlaps another time-off entry of the technician.
        """
        require_technician(self.directory, technician_id, company_id)
        _validate_period(start_datetime, end_datetime)

        with self.locks.hold(technician_id):
            try:
                self._check_overlap(
                    start_datetime, end_datetime,
                    self._rows(technician_id),
                    "The new time off period overlaps with existing time off",
                )
            except Overlap:
                logger.warning("Rejected overlapping time off for technician %s", technician_id)
                raise

            row = db_models.TechnicianTimeOff(
                technician_id=technician_id,
                start_datetime=start_datetime,
                end_datetime=end_datetime,
                reason=reason,
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)

        logger.info("Added time off entry %s for technician %s", row.id, technician_id)
        return TimeOffEntry.model_validate(row)

    def update(
        self,
        entry_id: int,
        technician_id: str,
        company_id: str,
        patch: TimeOffPatch,
    ) -> TimeOffEntry:
        require_technician(self.directory, technician_id, company_id)
        with self.locks.hold(technician_id):
            row = self._owned_row(entry_id, technician_id, company_id)

            start_datetime = patch.start_datetime if patch.start_datetime is not None else row.start_datetime
            end_datetime = patch.end_datetime if patch.end_datetime is not None else row.end_datetime
            _validate_period(start_datetime, end_datetime)

            siblings = [s for s in self._rows(technician_id) if s.id != row.id]
            try:
                self._check_overlap(
                    start_datetime, end_datetime, siblings,
                    "The updated time off period overlaps with existing time off",
                )
            except Overlap:
                logger.warning("Rejected overlapping update of time off entry %s", entry_id)
                raise

            row.start_datetime = start_datetime
            row.end_datetime = end_datetime
            if "reason" in patch.model_fields_set:
                row.reason = patch.reason
            self.db.commit()
            self.db.refresh(row)

        logger.info("Updated time off entry %s for technician %s", entry_id, technician_id)
        return TimeOffEntry.model_validate(row)

    def remove(self, entry_id: int, technician_id: str, company_id: str) -> None:
        require_technician(self.directory, technician_id, company_id)
        with self.locks.hold(technician_id):
            row = self._owned_row(entry_id, technician_id, company_id)
            self.db.delete(row)
            self.db.commit()
        logger.info("Deleted time off entry %s for technician %s", entry_id, technician_id)
