from __future__ import annotations
"""SQLAlchemy model for a professional's application to a job posting."""
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.database import Base
from .enums import ApplicationStatus


class ShiftApplication(Base):
    __tablename__ = "job_applications"
    job_id: Mapped[str] = mapped_column(String, primary_key=True)
    professional_user_sub: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    clinic_id: Mapped[str | None] = mapped_column(String, nullable=True)
    application_status: Mapped[str] = mapped_column(
        String, default=ApplicationStatus.PENDING.value, nullable=False, index=True
    )

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
