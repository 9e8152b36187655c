from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.models.db import JobPosting
from app.models.db.enums import SkipReason
from app.services.job_schedule import (
    IsoStampedSchedule,
    MultiDaySchedule,
    ShiftEndStatus,
    TemporarySchedule,
    compute_shift_end,
    has_elapsed,
    normalize_end_time,
    resolve_schedule,
)


def _job(**fields) -> JobPosting:
    fields.setdefault("status", "active")
    fields.setdefault("job_id", "job-1")
    fields.setdefault("clinic_id", "clinic-1")
    return JobPosting(**fields)


def test_multi_day_latest_date_wins():
    job = _job(job_type="multi_day_consulting", dates=["2024-01-05", "2024-01-03", "2024-01-10"], end_time="17:00")
    result = compute_shift_end(job)
    assert result.status == ShiftEndStatus.RESOLVED
    assert result.at == datetime(2024, 1, 10, 17, 0, 0, tzinfo=timezone.utc)


def test_multi_day_falls_back_to_start_date():
    job = _job(job_type="multi_day", start_date="2024-02-01", end_time="09:30")
    result = compute_shift_end(job)
    assert result.at == datetime(2024, 2, 1, 9, 30, 0, tzinfo=timezone.utc)


def test_multi_day_falls_back_to_date_when_no_dates_or_start_date():
    job = _job(job_type="multi_day", dates=[], date="2024-02-03", end_time="18:15:30")
    assert compute_shift_end(job).at == datetime(2024, 2, 3, 18, 15, 30, tzinfo=timezone.utc)


def test_multi_day_dates_ignore_non_string_entries_and_time_suffix():
    job = _job(job_type="multi_day", dates=[None, 20240301, "2024-02-20T00:00:00.000Z", "2024-02-18"], end_time="16:00")
    assert compute_shift_end(job).at == datetime(2024, 2, 20, 16, 0, tzinfo=timezone.utc)


def test_multi_day_without_any_date_is_indeterminate():
    job = _job(job_type="multi_day", end_time="16:00")
    result = compute_shift_end(job)
    assert result.status == ShiftEndStatus.INDETERMINATE
    assert result.reason == SkipReason.INDETERMINATE_SHIFT_END
    assert result.at is None


def test_temporary_prefers_date_then_start_date():
    assert compute_shift_end(_job(job_type="temporary", date="2024-01-15", start_date="2024-01-01", end_time="12:00")).at == datetime(
        2024, 1, 15, 12, 0, tzinfo=timezone.utc
    )
    assert compute_shift_end(_job(job_type="temporary", start_date="2024-01-01", end_time="12:00")).at == datetime(
        2024, 1, 1, 12, 0, tzinfo=timezone.utc
    )


def test_temporary_with_malformed_end_time_is_indeterminate():
    result = compute_shift_end(_job(job_type="temporary", date="2024-01-15", end_time="5pm"))
    assert result.status == ShiftEndStatus.INDETERMINATE
    assert "5pm" in (result.detail or "")


def test_other_type_uses_iso_stamped_date_portion():
    job = _job(job_type="locum", date="2024-03-04T08:00:00.000Z", end_time="17:00")
    assert compute_shift_end(job).at == datetime(2024, 3, 4, 17, 0, tzinfo=timezone.utc)


def test_other_type_without_iso_stamp_is_indeterminate():
    job = _job(job_type="locum", date="2024-03-04", end_time="17:00")
    assert compute_shift_end(job).status == ShiftEndStatus.INDETERMINATE


def test_permanent_job_is_not_applicable_regardless_of_dates():
    job = _job(job_type="permanent", date="2020-01-01", dates=["2020-01-01"], end_time="17:00")
    result = compute_shift_end(job)
    assert result.status == ShiftEndStatus.NOT_APPLICABLE
    assert result.reason == SkipReason.PERMANENT_JOB


def test_inactive_job_is_not_applicable():
    job = _job(job_type="temporary", status="inactive", date="2020-01-01", end_time="17:00")
    result = compute_shift_end(job)
    assert result.status == ShiftEndStatus.NOT_APPLICABLE
    assert result.reason == SkipReason.JOB_NOT_ACTIVE


def test_end_of_day_rolls_over_to_next_midnight():
    result = compute_shift_end(_job(job_type="temporary", date="2024-01-15", end_time="24:00"))
    assert result.status == ShiftEndStatus.RESOLVED
    assert result.at == datetime(2024, 1, 16, 0, 0, tzinfo=timezone.utc)

    last_day = _job(job_type="multi_day", dates=["2024-02-28", "2024-02-29"], end_time="24:00:00")
    assert compute_shift_end(last_day).at == datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("end_time", ["24:30", "24:00:01"])
def test_other_hour_24_times_are_indeterminate(end_time):
    job = _job(job_type="temporary", date="2024-01-15", end_time=end_time)
    assert compute_shift_end(job).status == ShiftEndStatus.INDETERMINATE


@pytest.mark.parametrize("end_time", ["25:00", "17:61", "", None, "17", "17:00:00:00"])
def test_unusable_end_times_are_indeterminate(end_time):
    job = _job(job_type="temporary", date="2024-01-15", end_time=end_time)
    assert compute_shift_end(job).status == ShiftEndStatus.INDETERMINATE


def test_unparseable_date_is_indeterminate():
    job = _job(job_type="temporary", date="15/01/2024", end_time="17:00")
    assert compute_shift_end(job).status == ShiftEndStatus.INDETERMINATE


def test_naive_end_uses_configured_zone():
    job = _job(job_type="temporary", date="2024-07-01", end_time="17:00")
    result = compute_shift_end(job, zone=ZoneInfo("America/New_York"))
    assert result.at == datetime(2024, 7, 1, 21, 0, tzinfo=timezone.utc)


def test_shift_zone_setting_is_applied(monkeypatch):
    from app.config import SHIFT_COMPLETION_SETTINGS
    monkeypatch.setitem(SHIFT_COMPLETION_SETTINGS, "shift_timezone", "Europe/Berlin")
    result = compute_shift_end(_job(job_type="temporary", date="2024-01-15", end_time="17:00"))
    assert result.at == datetime(2024, 1, 15, 16, 0, tzinfo=timezone.utc)


def test_resolve_schedule_variants():
    assert isinstance(resolve_schedule(_job(job_type="temporary", date="2024-01-01")), TemporarySchedule)
    assert isinstance(resolve_schedule(_job(job_type="multi_day_consulting", dates=["2024-01-01"])), MultiDaySchedule)
    assert isinstance(resolve_schedule(_job(job_type="locum", start_date="2024-01-01T00:00:00Z")), IsoStampedSchedule)
    assert resolve_schedule(_job(job_type="temporary")) is None


def test_normalize_end_time():
    assert normalize_end_time("09:30") == "09:30:00"
    assert normalize_end_time("09:30:15") == "09:30:15"
    assert normalize_end_time("930") is None
    assert normalize_end_time(930) is None


def test_has_elapsed_is_strict():
    end = datetime(2024, 1, 1, 17, 0, tzinfo=timezone.utc)
    assert has_elapsed(end, datetime(2024, 1, 1, 17, 0, 1, tzinfo=timezone.utc))
    assert not has_elapsed(end, end)
