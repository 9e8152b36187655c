"""Central Enum definitions for marketplace lifecycle states.

Status columns are stored as plain strings because other handlers write the
same records; these enums keep the values this job reads and writes
consistent across models, services and tests.
"""
from __future__ import annotations
import enum


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    DECLINED = "declined"
    JOB_CANCELLED = "job_cancelled"


class JobType(str, enum.Enum):
    TEMPORARY = "temporary"
    MULTI_DAY = "multi_day"
    MULTI_DAY_CONSULTING = "multi_day_consulting"
    PERMANENT = "permanent"


class JobPostingStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

# ------------------------------ Referrals ------------------------------ #

class ReferralStatus(str, enum.Enum):
    SIGNED_UP = "signed_up"
    BONUS_DUE = "bonus_due"
    PAID = "paid"


class SettlementOutcome(str, enum.Enum):
    NOT_REFERRED = "not_referred"
    NOT_ELIGIBLE = "not_eligible"
    ELIGIBLE = "eligible"            # bonus write queued, not yet applied
    AWARDED = "awarded"
    ALREADY_SETTLED = "already_settled"
    LOOKUP_FAILED = "lookup_failed"
    FAILED = "failed"

# --------------------------- Completion run ---------------------------- #

class SkipReason(str, enum.Enum):
    MISSING_KEYS = "missing_keys"
    JOB_NOT_FOUND = "job_not_found"
    JOB_MISSING_OWNER = "job_missing_owner"
    JOB_NOT_ACTIVE = "job_not_active"
    PERMANENT_JOB = "permanent_job"
    INDETERMINATE_SHIFT_END = "indeterminate_shift_end"


MULTI_DAY_JOB_TYPES = frozenset({JobType.MULTI_DAY.value, JobType.MULTI_DAY_CONSULTING.value})

__all__ = [
    "ApplicationStatus",
    "JobType",
    "JobPostingStatus",
    "ReferralStatus",
    "SettlementOutcome",
    "SkipReason",
    "MULTI_DAY_JOB_TYPES",
]
