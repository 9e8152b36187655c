"""Shift completion orchestrator.

Single public function `run_shift_completion()` that:
1. Scans every scheduled application (fatal on failure).
2. Resolves each application's job posting through the clinic index, memoized
   for this run only.
3. Computes the shift end from the posting's date encoding.
4. If the shift has ended, queues application -> completed and
   posting -> inactive, plus the referral bonus settlement when the
   professional's referral is still signed_up.
5. Applies all queued writes concurrently and folds their outcomes into a
   ShiftCompletionRunSummary.

Every per-application step runs inside its own try-boundary: one broken
record is logged and counted, and the loop moves on.
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from app import database
from app.jobs.pending_writes import PendingWrite, execute_pending_writes
from app.models.db.enums import ApplicationStatus, JobPostingStatus, SettlementOutcome, SkipReason
from app.models.db.job_postings import JobPosting
from app.models.schemas.shift_completion import SettlementResult, ShiftCompletionRunSummary, WriteFailure
from app.services.job_schedule import ShiftEndStatus, compute_shift_end, has_elapsed
from app.services.referral_settlement import prepare_settlement, settle_referral_bonus
from app.services.stores import (
    ScheduledApplication,
    find_job_posting,
    scan_scheduled_applications,
    set_application_status,
    set_job_posting_status,
)
from app.utils import get_logger, log_business_event, log_performance
from app.utils.time import ensure_aware, format_elapsed, utc_now

logger = get_logger(__name__)

APPLICATION_STATUS_WRITE = "application_status"
JOB_POSTING_STATUS_WRITE = "job_posting_status"
REFERRAL_BONUS_WRITE = "referral_bonus"


class JobLookupCache:
    """Memo of (clinic_id, job_id) -> JobPosting | None for one run.

    Misses are cached too. Never shared between runs.
    """

    def __init__(self, session: Session):
        self._session = session
        self._entries: dict[tuple[str, str], Optional[JobPosting]] = {}
        self.lookups = 0

    def get(self, clinic_id: str, job_id: str) -> Optional[JobPosting]:
        key = (clinic_id, job_id)
        if key not in self._entries:
            self.lookups += 1
            self._entries[key] = find_job_posting(self._session, clinic_id, job_id)
        return self._entries[key]


@dataclass
class ApplicationEvaluation:
    completed: bool = False
    skip_reason: Optional[SkipReason] = None
    writes: list[PendingWrite] = field(default_factory=list)
    settlement: Optional[SettlementResult] = None
    settlement_write: Optional[PendingWrite] = None


def _status_write(label: str, key: dict[str, str], fn, *args) -> PendingWrite:
    def _apply(session: Session) -> int:
        changed = fn(session, *args)
        if changed == 0:
            logger.warning("Status write matched no rows; record vanished", label=label, **key)
        return changed
    return PendingWrite(label=label, apply=_apply, key=key)


def evaluate_application(
    session: Session,
    application: ScheduledApplication,
    *,
    jobs: JobLookupCache,
    now: datetime,
    run_id: Optional[str] = None,
) -> ApplicationEvaluation:
    """Decide what happens to one scheduled application; performs reads only."""
    if not application.clinic_id or not application.job_id:
        logger.warning("Skipping application missing clinic_id or job_id", **application.key())
        return ApplicationEvaluation(skip_reason=SkipReason.MISSING_KEYS)

    job = jobs.get(application.clinic_id, application.job_id)
    if job is None:
        logger.warning("Job posting not found via clinic index", clinic_id=application.clinic_id, **application.key())
        return ApplicationEvaluation(skip_reason=SkipReason.JOB_NOT_FOUND)

    if not job.clinic_user_sub:
        logger.critical(
            "Job posting from clinic index lacks clinic_user_sub; cannot address it for update",
            clinic_id=application.clinic_id,
            job_id=application.job_id,
        )
        return ApplicationEvaluation(skip_reason=SkipReason.JOB_MISSING_OWNER)

    shift_end = compute_shift_end(job)
    if shift_end.status == ShiftEndStatus.NOT_APPLICABLE:
        logger.info("Job not subject to time-based completion", job_id=job.job_id, reason=shift_end.reason.value, detail=shift_end.detail)
        return ApplicationEvaluation(skip_reason=shift_end.reason)
    if shift_end.status == ShiftEndStatus.INDETERMINATE or shift_end.at is None:
        logger.warning(
            "Could not determine shift end; skipping",
            job_id=job.job_id,
            job_type=job.job_type,
            end_time=job.end_time,
            dates=job.dates,
            detail=shift_end.detail,
        )
        return ApplicationEvaluation(skip_reason=SkipReason.INDETERMINATE_SHIFT_END)

    if not has_elapsed(shift_end.at, now):
        logger.debug("Shift not yet ended", job_id=job.job_id, shift_end=shift_end.at.isoformat())
        return ApplicationEvaluation()

    logger.info(
        "Shift ended; queuing completion",
        job_id=job.job_id,
        professional_user_sub=application.professional_user_sub,
        shift_end=shift_end.at.isoformat(),
    )
    evaluation = ApplicationEvaluation(completed=True)
    evaluation.writes.append(
        _status_write(
            APPLICATION_STATUS_WRITE,
            application.key(),
            set_application_status,
            application.job_id,
            application.professional_user_sub,
            ApplicationStatus.COMPLETED.value,
            now,
        )
    )
    evaluation.writes.append(
        _status_write(
            JOB_POSTING_STATUS_WRITE,
            {"clinic_user_sub": job.clinic_user_sub, "job_id": job.job_id},
            set_job_posting_status,
            job.clinic_user_sub,
            job.job_id,
            JobPostingStatus.INACTIVE.value,
            now,
        )
    )

    try:
        settlement = prepare_settlement(session, application.professional_user_sub)
    except Exception as e:
        logger.error(
            "Referral lookup failed; skipping bonus settlement",
            professional_user_sub=application.professional_user_sub,
            error=str(e),
            exc_info=True,
        )
        settlement = SettlementResult(
            professional_user_sub=application.professional_user_sub,
            outcome=SettlementOutcome.LOOKUP_FAILED,
            error=str(e),
        )
    evaluation.settlement = settlement

    if settlement.outcome == SettlementOutcome.ELIGIBLE:
        evaluation.settlement_write = PendingWrite(
            label=REFERRAL_BONUS_WRITE,
            apply=partial(settle_referral_bonus, candidate=settlement, now=now, run_id=run_id),
            key={"referral_id": settlement.referral_id or "", "professional_user_sub": application.professional_user_sub},
        )
        evaluation.writes.append(evaluation.settlement_write)
    return evaluation


def run_shift_completion(
    *,
    session_factory: Optional[sessionmaker] = None,
    now: Optional[datetime] = None,
) -> ShiftCompletionRunSummary:
    """Run one completion pass over all scheduled applications.

    Raises when the scan fails or on an unexpected error outside the
    per-application boundary; the caller retries the whole run.
    """
    factory = session_factory or database.SessionLocal
    started = utc_now()
    evaluated_at = ensure_aware(now) if now is not None else started
    summary = ShiftCompletionRunSummary(run_id=uuid.uuid4().hex[:12], started_at=started, evaluated_at=evaluated_at)
    clock = time.perf_counter()
    logger.info("Shift completion run started", run_id=summary.run_id, now=evaluated_at.isoformat())

    writes: list[PendingWrite] = []
    eligible: list[tuple[SettlementResult, PendingWrite]] = []
    try:
        with factory() as session:
            applications = scan_scheduled_applications(session)
            summary.scanned = len(applications)
            logger.info("Scheduled applications found", run_id=summary.run_id, count=summary.scanned)

            jobs = JobLookupCache(session)
            for application in applications:
                try:
                    evaluation = evaluate_application(session, application, jobs=jobs, now=evaluated_at, run_id=summary.run_id)
                except Exception as e:
                    summary.failed_applications += 1
                    logger.error(
                        "Application evaluation failed; continuing with next",
                        run_id=summary.run_id,
                        error=str(e),
                        exc_info=True,
                        **application.key(),
                    )
                    continue

                if evaluation.skip_reason is not None:
                    summary.count_skip(evaluation.skip_reason.value)
                elif evaluation.completed:
                    summary.completed += 1
                else:
                    summary.not_elapsed += 1
                writes.extend(evaluation.writes)
                if evaluation.settlement_write is not None:
                    eligible.append((evaluation.settlement, evaluation.settlement_write))
                elif evaluation.settlement is not None:
                    summary.settlements.append(evaluation.settlement)
            summary.job_lookups = jobs.lookups

        summary.writes_attempted = len(writes)
        outcomes = execute_pending_writes(writes, session_factory=factory)
    except Exception as e:
        logger.error("Shift completion run failed", run_id=summary.run_id, error=str(e), exc_info=True)
        raise

    by_write = {id(o.write): o for o in outcomes}
    for outcome in outcomes:
        write = outcome.write
        if not outcome.ok:
            summary.write_failures.append(WriteFailure(label=write.label, key=write.key, error=str(outcome.error)))
        elif write.label == APPLICATION_STATUS_WRITE and outcome.result:
            log_business_event("shift_completed", dict(write.key), run_id=summary.run_id)

    for candidate, write in eligible:
        outcome = by_write[id(write)]
        if outcome.ok:
            summary.settlements.append(outcome.result)
        else:
            summary.settlements.append(
                candidate.model_copy(update={"outcome": SettlementOutcome.FAILED, "error": str(outcome.error)})
            )

    summary.finished_at = utc_now()
    log_performance(
        "shift_completion_run",
        (time.perf_counter() - clock) * 1000,
        {"run_id": summary.run_id, "scanned": summary.scanned, "completed": summary.completed},
    )
    logger.info(
        "Shift completion run finished",
        run_id=summary.run_id,
        elapsed=format_elapsed(started, summary.finished_at),
        scanned=summary.scanned,
        completed=summary.completed,
        not_elapsed=summary.not_elapsed,
        skipped=summary.skipped or None,
        failed_applications=summary.failed_applications,
        write_failures=len(summary.write_failures),
        bonuses_awarded=summary.bonuses_awarded,
    )
    return summary


__all__ = ["JobLookupCache", "ApplicationEvaluation", "evaluate_application", "run_shift_completion"]
