import os
import secrets
import sys
from pathlib import Path
import pytest
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'app' package resolves without installation
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.database import Base  # type: ignore
"""Pytest fixtures and factories.

All model modules are imported before Base.metadata.create_all() so every
table is registered.
"""
from app.models.db import (
    ShiftApplication, JobPosting, Referral, ProfessionalProfile,
)
from app.models.db.enums import ApplicationStatus, JobPostingStatus, JobType, ReferralStatus

# File-based SQLite so the deferred-write worker threads and the test thread
# each get their own connection to the same data.
SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///./test_shift_completion.db"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Services resolve app.database.SessionLocal at call time; point it at the test DB.
import app.database as _app_database  # noqa: E402
_app_database.SessionLocal = TestingSessionLocal  # type: ignore

@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    try:
        os.remove("test_shift_completion.db")
    except OSError:
        pass

@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(autouse=True)
def _clean_tables(create_test_db):
    """Every run scans the whole applications table, so tests start empty."""
    yield
    with TestingSessionLocal() as session:
        for model in (ShiftApplication, JobPosting, Referral, ProfessionalProfile):
            session.execute(delete(model))
        session.commit()

@pytest.fixture()
def session_factory():
    return TestingSessionLocal

# ---------- Data factory helpers ----------

@pytest.fixture()
def job_posting_factory(db_session):
    def _create(
        *,
        job_id: str | None = None,
        clinic_id: str = "clinic-1",
        clinic_user_sub: str | None = "clinic-owner-1",
        job_type: str = JobType.TEMPORARY.value,
        status: str = JobPostingStatus.ACTIVE.value,
        date: str | None = None,
        start_date: str | None = None,
        dates: list | None = None,
        end_time: str | None = "17:00",
    ) -> JobPosting:
        job = JobPosting(
            job_id=job_id or f"job-{secrets.token_hex(4)}",
            clinic_id=clinic_id,
            clinic_user_sub=clinic_user_sub,
            job_type=job_type,
            status=status,
            date=date,
            start_date=start_date,
            dates=dates,
            end_time=end_time,
        )
        db_session.add(job)
        db_session.commit()
        db_session.refresh(job)
        return job
    return _create

@pytest.fixture()
def application_factory(db_session):
    def _create(
        job: JobPosting,
        *,
        professional_user_sub: str | None = None,
        status: str = ApplicationStatus.SCHEDULED.value,
        clinic_id: str | None = None,
    ) -> ShiftApplication:
        application = ShiftApplication(
            job_id=job.job_id,
            professional_user_sub=professional_user_sub or f"pro-{secrets.token_hex(4)}",
            clinic_id=clinic_id if clinic_id is not None else job.clinic_id,
            application_status=status,
        )
        db_session.add(application)
        db_session.commit()
        db_session.refresh(application)
        return application
    return _create

@pytest.fixture()
def referral_factory(db_session):
    def _create(
        referred_user_sub: str,
        *,
        referrer_user_sub: str = "referrer-1",
        status: str = ReferralStatus.SIGNED_UP.value,
    ) -> Referral:
        referral = Referral(
            referral_id=f"ref-{secrets.token_hex(4)}",
            referrer_user_sub=referrer_user_sub,
            referred_user_sub=referred_user_sub,
            status=status,
        )
        db_session.add(referral)
        db_session.commit()
        db_session.refresh(referral)
        return referral
    return _create

@pytest.fixture()
def profile_factory(db_session):
    def _create(user_sub: str, *, bonus_balance: int | None = None) -> ProfessionalProfile:
        profile = ProfessionalProfile(user_sub=user_sub, bonus_balance=bonus_balance)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile
    return _create
