from datetime import datetime, timezone

from app.jobs.pending_writes import PendingWrite, execute_pending_writes
from app.models.db import ShiftApplication
from app.services.stores import set_application_status

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_empty_batch_is_noop(session_factory):
    assert execute_pending_writes([], session_factory=session_factory) == []


def test_failure_is_captured_and_other_writes_commit(db_session, session_factory, job_posting_factory, application_factory):
    job = job_posting_factory()
    a = application_factory(job, professional_user_sub="pro-a")
    b = application_factory(job, professional_user_sub="pro-b")

    def _fail(session):
        raise RuntimeError("store unavailable")

    writes = [
        PendingWrite("application_status", lambda s: set_application_status(s, a.job_id, "pro-a", "completed", NOW), {"professional_user_sub": "pro-a"}),
        PendingWrite("application_status", _fail, {"professional_user_sub": "pro-x"}),
        PendingWrite("application_status", lambda s: set_application_status(s, b.job_id, "pro-b", "completed", NOW), {"professional_user_sub": "pro-b"}),
    ]
    outcomes = execute_pending_writes(writes, session_factory=session_factory, max_workers=3)

    assert [o.ok for o in outcomes] == [True, False, True]
    assert [o.write for o in outcomes] == writes
    assert isinstance(outcomes[1].error, RuntimeError)
    assert outcomes[0].result == 1

    db_session.expire_all()
    assert db_session.get(ShiftApplication, (job.job_id, "pro-a")).application_status == "completed"
    assert db_session.get(ShiftApplication, (job.job_id, "pro-b")).application_status == "completed"


def test_single_worker_runs_all(session_factory):
    seen = []
    writes = [PendingWrite("noop", lambda s, i=i: seen.append(i)) for i in range(5)]
    outcomes = execute_pending_writes(writes, session_factory=session_factory, max_workers=1)
    assert all(o.ok for o in outcomes)
    assert seen == [0, 1, 2, 3, 4]
