from __future__ import annotations
"""SQLAlchemy model for referrer/referred relationships."""
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.database import Base
from .enums import ReferralStatus


class Referral(Base):
    __tablename__ = "referrals"
    referral_id: Mapped[str] = mapped_column(String, primary_key=True)
    referrer_user_sub: Mapped[str] = mapped_column(String, nullable=False, index=True)
    referred_user_sub: Mapped[str] = mapped_column(String, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, default=ReferralStatus.SIGNED_UP.value, nullable=False)

    first_shift_completed_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
