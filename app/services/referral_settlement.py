"""Referral bonus settlement for a professional's first completed shift.

Two phases:

1. ``prepare_settlement`` (read-only, runs while the application is evaluated)
   finds the professional's referral and decides whether a bonus may be due.
2. ``settle_referral_bonus`` (deferred write) moves the referral from
   ``signed_up`` to ``bonus_due`` with a conditional update and, only when
   that update changed the row, credits the referrer. Both statements commit
   together, so a failed credit leaves the referral ``signed_up`` for the next
   run and a lost race credits nothing.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.config import REFERRAL_BONUS_SETTINGS
from app.models.db.enums import ReferralStatus, SettlementOutcome
from app.models.schemas.shift_completion import SettlementResult
from app.services.stores import (
    count_completed_shifts,
    credit_bonus,
    find_referral_for_professional,
    mark_referral_bonus_due,
)
from app.utils import get_logger, log_business_event

logger = get_logger(__name__)


def bonus_amount() -> int:
    return int(REFERRAL_BONUS_SETTINGS["bonus_amount"])


def prepare_settlement(session: Session, professional_user_sub: str) -> SettlementResult:
    """Check whether completing a shift for this professional may trigger a bonus.

    Query errors propagate; the caller treats them as a skipped settlement.
    """
    referral = find_referral_for_professional(session, professional_user_sub)
    if referral is None:
        logger.debug("Professional was not referred", professional_user_sub=professional_user_sub)
        return SettlementResult(professional_user_sub=professional_user_sub, outcome=SettlementOutcome.NOT_REFERRED)

    if referral.status != ReferralStatus.SIGNED_UP.value:
        logger.info(
            "Referral not eligible for bonus",
            professional_user_sub=professional_user_sub,
            referral_id=referral.referral_id,
            referral_status=referral.status,
        )
        return SettlementResult(
            professional_user_sub=professional_user_sub,
            outcome=SettlementOutcome.NOT_ELIGIBLE,
            referral_id=referral.referral_id,
            referrer_user_sub=referral.referrer_user_sub,
        )

    # Informational: the status guard, not this count, decides eligibility
    prior = count_completed_shifts(session, professional_user_sub)
    logger.info(
        "Referral eligible for first-shift bonus",
        professional_user_sub=professional_user_sub,
        referral_id=referral.referral_id,
        referrer_user_sub=referral.referrer_user_sub,
        prior_completed_shifts=prior,
    )
    return SettlementResult(
        professional_user_sub=professional_user_sub,
        outcome=SettlementOutcome.ELIGIBLE,
        referral_id=referral.referral_id,
        referrer_user_sub=referral.referrer_user_sub,
        prior_completed_shifts=prior,
    )


def settle_referral_bonus(
    session: Session,
    candidate: SettlementResult,
    *,
    now: datetime,
    amount: Optional[int] = None,
    run_id: Optional[str] = None,
) -> SettlementResult:
    """Apply the bonus for an ELIGIBLE candidate inside one transaction.

    Returns the candidate with outcome AWARDED or ALREADY_SETTLED. Database
    errors roll back and propagate.
    """
    if candidate.outcome != SettlementOutcome.ELIGIBLE or not candidate.referral_id or not candidate.referrer_user_sub:
        raise ValueError(f"settlement candidate is not eligible: {candidate.outcome.value}")
    credit = bonus_amount() if amount is None else int(amount)

    try:
        if not mark_referral_bonus_due(session, candidate.referral_id, now):
            session.rollback()
            logger.info(
                "Referral already settled; skipping bonus",
                referral_id=candidate.referral_id,
                professional_user_sub=candidate.professional_user_sub,
            )
            return candidate.model_copy(update={"outcome": SettlementOutcome.ALREADY_SETTLED})
        credit_bonus(session, candidate.referrer_user_sub, credit, now)
        session.commit()
    except Exception:
        session.rollback()
        raise

    log_business_event(
        "referral_bonus_awarded",
        {
            "referral_id": candidate.referral_id,
            "referrer_user_sub": candidate.referrer_user_sub,
            "referred_user_sub": candidate.professional_user_sub,
            "amount": credit,
        },
        run_id=run_id,
    )
    return candidate.model_copy(update={"outcome": SettlementOutcome.AWARDED, "bonus_amount": credit})


__all__ = ["bonus_amount", "prepare_settlement", "settle_referral_bonus"]
