from __future__ import annotations
"""SQLAlchemy model for professional profiles (bonus balance only)."""
from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.database import Base


class ProfessionalProfile(Base):
    __tablename__ = "professional_profiles"
    user_sub: Mapped[str] = mapped_column(String, primary_key=True)
    # Running total, only ever incremented
    bonus_balance: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
