from .enums import (
    ApplicationStatus,
    JobType,
    JobPostingStatus,
    ReferralStatus,
    SettlementOutcome,
    SkipReason,
)
from .shift_applications import ShiftApplication
from .job_postings import JobPosting
from .referrals import Referral
from .professional_profiles import ProfessionalProfile

__all__ = [
    "ApplicationStatus",
    "JobType",
    "JobPostingStatus",
    "ReferralStatus",
    "SettlementOutcome",
    "SkipReason",
    "ShiftApplication",
    "JobPosting",
    "Referral",
    "ProfessionalProfile",
]
