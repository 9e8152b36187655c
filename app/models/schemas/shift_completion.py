"""
Pydantic schemas describing the outcome of a shift completion run.
"""
from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from app.models.db.enums import SettlementOutcome


class SettlementResult(BaseModel):
    """Referral bonus settlement state for one completed shift."""
    professional_user_sub: str
    outcome: SettlementOutcome
    referral_id: Optional[str] = None
    referrer_user_sub: Optional[str] = None
    prior_completed_shifts: Optional[int] = Field(
        None, description="Completed shifts already on record for the professional when the referral was checked"
    )
    bonus_amount: Optional[int] = Field(None, description="Amount credited to the referrer (AWARDED only)")
    error: Optional[str] = None


class WriteFailure(BaseModel):
    """A deferred write that raised while being applied."""
    label: str = Field(description="application_status | job_posting_status | referral_bonus")
    key: Dict[str, str]
    error: str


class ShiftCompletionRunSummary(BaseModel):
    """Counters and per-item outcomes for one reconciliation run.

    `skipped` is keyed by SkipReason value. `failed_applications` counts
    applications whose evaluation raised; they were logged and left untouched.
    """
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    evaluated_at: datetime = Field(description="Instant shift ends were compared against")

    scanned: int = 0
    completed: int = 0
    not_elapsed: int = 0
    skipped: Dict[str, int] = Field(default_factory=dict)
    failed_applications: int = 0
    job_lookups: int = Field(0, description="Distinct job posting lookups issued (run-scoped memoization)")

    writes_attempted: int = 0
    write_failures: List[WriteFailure] = Field(default_factory=list)
    settlements: List[SettlementResult] = Field(default_factory=list)

    @property
    def bonuses_awarded(self) -> int:
        return sum(1 for s in self.settlements if s.outcome == SettlementOutcome.AWARDED)

    def count_skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1
