"""Key-value store operations used by the shift completion job.

Each function maps one store contract onto a single SQLAlchemy statement:

* applications: paginated scan of ``scheduled`` rows, status overwrite,
  completed-shift count per professional
* job postings: lookup through the (clinic_id, job_id) index, status overwrite
* referrals: lookup by referred professional, conditional ``signed_up -> bonus_due``
* professional profiles: additive bonus credit (creates the row if absent)

Functions never commit; the caller owns the transaction.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import SHIFT_COMPLETION_SETTINGS
from app.models.db.enums import ApplicationStatus, ReferralStatus
from app.models.db.job_postings import JobPosting
from app.models.db.professional_profiles import ProfessionalProfile
from app.models.db.referrals import Referral
from app.models.db.shift_applications import ShiftApplication
from app.utils import get_logger

logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class ScheduledApplication:
    job_id: str | None
    professional_user_sub: str
    clinic_id: str | None

    def key(self) -> dict[str, str]:
        return {"job_id": self.job_id or "", "professional_user_sub": self.professional_user_sub}


# ------------------------------ applications ------------------------------ #

def scan_scheduled_applications(session: Session, *, page_size: int | None = None) -> list[ScheduledApplication]:
    """Return every scheduled application, reading page by page until exhausted.

    Keyset pagination on the primary key keeps pages stable while other
    handlers insert or update rows mid-scan.
    """
    size = int(page_size or SHIFT_COMPLETION_SETTINGS["scan_page_size"])
    if size < 1:
        raise ValueError("scan page size must be positive")

    found: list[ScheduledApplication] = []
    last_key: tuple[str, str] | None = None
    pages = 0
    while True:
        stmt = (
            select(ShiftApplication.job_id, ShiftApplication.professional_user_sub, ShiftApplication.clinic_id)
            .where(ShiftApplication.application_status == ApplicationStatus.SCHEDULED.value)
            .order_by(ShiftApplication.job_id, ShiftApplication.professional_user_sub)
            .limit(size)
        )
        if last_key is not None:
            job_id, professional = last_key
            stmt = stmt.where(
                or_(
                    ShiftApplication.job_id > job_id,
                    and_(ShiftApplication.job_id == job_id, ShiftApplication.professional_user_sub > professional),
                )
            )
        rows = session.execute(stmt).all()
        pages += 1
        found.extend(ScheduledApplication(job_id=r.job_id, professional_user_sub=r.professional_user_sub, clinic_id=r.clinic_id) for r in rows)
        if len(rows) < size:
            break
        last_key = (rows[-1].job_id, rows[-1].professional_user_sub)

    logger.debug("Scheduled application scan finished", pages=pages, count=len(found))
    return found


def set_application_status(session: Session, job_id: str, professional_user_sub: str, status: str, now: datetime) -> int:
    """Unconditional status overwrite; returns affected row count."""
    result = session.execute(
        update(ShiftApplication)
        .where(ShiftApplication.job_id == job_id, ShiftApplication.professional_user_sub == professional_user_sub)
        .values(application_status=status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def count_completed_shifts(session: Session, professional_user_sub: str) -> int:
    stmt = (
        select(func.count())
        .select_from(ShiftApplication)
        .where(
            ShiftApplication.professional_user_sub == professional_user_sub,
            ShiftApplication.application_status == ApplicationStatus.COMPLETED.value,
        )
    )
    return int(session.execute(stmt).scalar_one())


# ------------------------------ job postings ------------------------------ #

def find_job_posting(session: Session, clinic_id: str, job_id: str) -> JobPosting | None:
    stmt = (
        select(JobPosting)
        .where(JobPosting.clinic_id == clinic_id, JobPosting.job_id == job_id)
        .order_by(JobPosting.id)
        .limit(1)
    )
    return session.execute(stmt).scalars().first()


def set_job_posting_status(session: Session, clinic_user_sub: str, job_id: str, status: str, now: datetime) -> int:
    """Unconditional status overwrite keyed by the posting's owner; returns affected row count."""
    result = session.execute(
        update(JobPosting)
        .where(JobPosting.clinic_user_sub == clinic_user_sub, JobPosting.job_id == job_id)
        .values(status=status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# -------------------------------- referrals -------------------------------- #

def find_referral_for_professional(session: Session, professional_user_sub: str) -> Referral | None:
    stmt = (
        select(Referral)
        .where(Referral.referred_user_sub == professional_user_sub)
        .order_by(Referral.created_at, Referral.referral_id)
        .limit(1)
    )
    return session.execute(stmt).scalars().first()


def mark_referral_bonus_due(session: Session, referral_id: str, now: datetime) -> bool:
    """Move a referral from signed_up to bonus_due.

    The status predicate is evaluated by the database at write time, so of two
    overlapping writers only one sees a changed row. Returns False when the
    referral was no longer signed_up (or no longer exists).
    """
    result = session.execute(
        update(Referral)
        .where(Referral.referral_id == referral_id, Referral.status == ReferralStatus.SIGNED_UP.value)
        .values(status=ReferralStatus.BONUS_DUE.value, first_shift_completed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# --------------------------- professional profiles -------------------------- #

def credit_bonus(session: Session, user_sub: str, amount: int, now: datetime) -> None:
    """Add ``amount`` to the profile's bonus balance, treating a missing balance as 0.

    A missing profile is inserted inside a savepoint; if another writer
    created it in the meantime the additive update is issued again.
    """
    stmt = (
        update(ProfessionalProfile)
        .where(ProfessionalProfile.user_sub == user_sub)
        .values(bonus_balance=func.coalesce(ProfessionalProfile.bonus_balance, 0) + amount, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if session.execute(stmt).rowcount:
        return

    logger.warning("Referrer profile missing; creating it with the bonus balance", user_sub=user_sub)
    try:
        with session.begin_nested():
            session.add(ProfessionalProfile(user_sub=user_sub, bonus_balance=amount, updated_at=now))
    except IntegrityError:
        logger.info("Referrer profile created concurrently; retrying additive credit", user_sub=user_sub)
        if session.execute(stmt).rowcount != 1:
            raise


__all__ = [
    "ScheduledApplication",
    "scan_scheduled_applications",
    "set_application_status",
    "count_completed_shifts",
    "find_job_posting",
    "set_job_posting_status",
    "find_referral_for_professional",
    "mark_referral_bonus_due",
    "credit_bonus",
]
