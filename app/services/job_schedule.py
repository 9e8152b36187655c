"""Shift-end time calculation for job postings.

Job postings encode their calendar date differently depending on how they
were created:

* ``temporary``: a single ``date`` (or ``start_date``), usually ``YYYY-MM-DD``
* ``multi_day`` / ``multi_day_consulting``: a ``dates`` list, with
  ``start_date`` then ``date`` as fallbacks on older records
* anything else: a ``date`` / ``start_date`` carrying a full ISO timestamp

Each encoding is resolved into one ``JobSchedule`` variant, which yields the
``YYYY-MM-DD`` date portion; that portion is combined with the normalized
``end_time`` into the shift end instant.

``compute_shift_end`` distinguishes three results:

* RESOLVED: a concrete instant
* NOT_APPLICABLE: the posting is inactive or permanent and never time-completes
* INDETERMINATE: the record lacks a usable date or end time; callers skip it
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from app.config import SHIFT_COMPLETION_SETTINGS
from app.models.db.enums import JobPostingStatus, JobType, MULTI_DAY_JOB_TYPES, SkipReason

_DATE_PORTION = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_END_OF_DAY = "24:00:00"


def _text(value: Any) -> Optional[str]:
    """Non-empty string or None."""
    if isinstance(value, str) and value:
        return value
    return None


def _date_portion(value: str) -> str:
    return value.split("T", 1)[0]


@dataclass(frozen=True, slots=True)
class TemporarySchedule:
    date: Optional[str]
    start_date: Optional[str]

    def date_portion(self) -> Optional[str]:
        ref = self.date or self.start_date
        return _date_portion(ref) if ref else None


@dataclass(frozen=True, slots=True)
class MultiDaySchedule:
    dates: tuple[str, ...]
    start_date: Optional[str]
    date: Optional[str]

    def date_portion(self) -> Optional[str]:
        # ISO dates sort lexicographically, so max() is the last working day
        if self.dates:
            return _date_portion(max(self.dates))
        ref = self.start_date or self.date
        return _date_portion(ref) if ref else None


@dataclass(frozen=True, slots=True)
class IsoStampedSchedule:
    value: str

    def date_portion(self) -> Optional[str]:
        return _date_portion(self.value)


JobSchedule = Union[TemporarySchedule, MultiDaySchedule, IsoStampedSchedule]


def resolve_schedule(job: Any) -> Optional[JobSchedule]:
    """Pick the schedule variant for a posting; None when no date source applies."""
    job_type = getattr(job, "job_type", None)
    date = _text(getattr(job, "date", None))
    start_date = _text(getattr(job, "start_date", None))

    if job_type in MULTI_DAY_JOB_TYPES:
        raw_dates = getattr(job, "dates", None)
        dates = tuple(d for d in raw_dates if _text(d)) if isinstance(raw_dates, (list, tuple)) else ()
        return MultiDaySchedule(dates=dates, start_date=start_date, date=date)

    if job_type == JobType.TEMPORARY.value:
        if date is None and start_date is None:
            return None
        return TemporarySchedule(date=date, start_date=start_date)

    ref = date or start_date
    if ref is not None and "T" in ref:
        return IsoStampedSchedule(value=ref)
    return None


def normalize_end_time(value: Any) -> Optional[str]:
    """Return ``HH:MM:SS`` for ``HH:MM:SS`` or ``HH:MM`` input, else None."""
    text = _text(value)
    if text is None:
        return None
    parts = text.split(":")
    if len(parts) == 3:
        return text
    if len(parts) == 2:
        return f"{text}:00"
    return None


def shift_timezone() -> tzinfo:
    name = str(SHIFT_COMPLETION_SETTINGS.get("shift_timezone", "UTC") or "UTC")
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class ShiftEndStatus(str, enum.Enum):
    RESOLVED = "resolved"
    NOT_APPLICABLE = "not_applicable"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class ShiftEnd:
    status: ShiftEndStatus
    at: Optional[datetime] = None
    reason: Optional[SkipReason] = None
    detail: Optional[str] = None


def _indeterminate(detail: str) -> ShiftEnd:
    return ShiftEnd(ShiftEndStatus.INDETERMINATE, reason=SkipReason.INDETERMINATE_SHIFT_END, detail=detail)


def compute_shift_end(job: Any, *, zone: Optional[tzinfo] = None) -> ShiftEnd:
    """Derive the instant a posting's (last) shift ends."""
    if getattr(job, "status", None) != JobPostingStatus.ACTIVE.value:
        return ShiftEnd(ShiftEndStatus.NOT_APPLICABLE, reason=SkipReason.JOB_NOT_ACTIVE, detail=f"status={getattr(job, 'status', None)}")
    if getattr(job, "job_type", None) == JobType.PERMANENT.value:
        return ShiftEnd(ShiftEndStatus.NOT_APPLICABLE, reason=SkipReason.PERMANENT_JOB, detail="permanent jobs are not time-completed")

    end_time = normalize_end_time(getattr(job, "end_time", None))
    if end_time is None:
        return _indeterminate(f"unusable end_time {getattr(job, 'end_time', None)!r}")

    schedule = resolve_schedule(job)
    if schedule is None:
        return _indeterminate(f"no usable date for job_type {getattr(job, 'job_type', None)!r}")

    day = schedule.date_portion()
    if not day or not _DATE_PORTION.match(day):
        return _indeterminate(f"unusable date portion {day!r} from {type(schedule).__name__}")

    # "24:00" closes the day: midnight of the following date
    rollover = end_time == _END_OF_DAY
    try:
        end = datetime.fromisoformat(f"{day}T{'00:00:00' if rollover else end_time}")
    except ValueError:
        return _indeterminate(f"unparseable shift end {day}T{end_time}")
    if rollover:
        end += timedelta(days=1)

    if end.tzinfo is None:
        end = end.replace(tzinfo=zone or shift_timezone())
    return ShiftEnd(ShiftEndStatus.RESOLVED, at=end)


def has_elapsed(shift_end: datetime, now: datetime) -> bool:
    return now > shift_end


__all__ = [
    "TemporarySchedule",
    "MultiDaySchedule",
    "IsoStampedSchedule",
    "JobSchedule",
    "resolve_schedule",
    "normalize_end_time",
    "shift_timezone",
    "ShiftEndStatus",
    "ShiftEnd",
    "compute_shift_end",
    "has_elapsed",
]
