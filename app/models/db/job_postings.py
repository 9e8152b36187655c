from __future__ import annotations
"""SQLAlchemy model for clinic job postings.

Postings are written by several handlers and carry whichever date encoding
their job type uses: a single ``date`` / ``start_date`` (plain or ISO stamped)
or a ``dates`` list for multi-day work. ``clinic_user_sub`` is part of the
logical key but may be missing on records surfaced through the clinic index,
so rows carry a surrogate id.
"""
from sqlalchemy import Integer, String, DateTime, JSON, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.database import Base
from .enums import JobPostingStatus


class JobPosting(Base):
    __tablename__ = "job_postings"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    clinic_user_sub: Mapped[str | None] = mapped_column(String, nullable=True)
    job_id: Mapped[str] = mapped_column(String, nullable=False)
    clinic_id: Mapped[str] = mapped_column(String, nullable=False)

    job_type: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, default=JobPostingStatus.ACTIVE.value, nullable=False)

    date: Mapped[str | None] = mapped_column(String, nullable=True)
    start_date: Mapped[str | None] = mapped_column(String, nullable=True)
    dates: Mapped[list | None] = mapped_column(JSON, nullable=True)
    start_time: Mapped[str | None] = mapped_column(String, nullable=True)
    end_time: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("clinic_user_sub", "job_id", name="uq_job_postings_clinic_user_sub_job_id"),
        # Secondary lookup path used by the completion job
        Index("ix_job_postings_clinic_id_job_id", "clinic_id", "job_id"),
    )
