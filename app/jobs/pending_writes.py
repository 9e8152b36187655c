"""Deferred writes collected during a completion run.

Evaluation only reads; every mutation it decides on is queued as a
``PendingWrite`` and applied at the end of the run. Writes are independent:
each runs on its own session in a bounded thread pool, commits on its own,
and a failure is captured on its ``WriteOutcome`` instead of being raised.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.orm import Session, sessionmaker

from app import database
from app.config import SHIFT_COMPLETION_SETTINGS
from app.utils import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class PendingWrite:
    label: str
    apply: Callable[[Session], Any]
    key: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class WriteOutcome:
    write: PendingWrite
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _apply(write: PendingWrite, session_factory: Callable[[], Session]) -> WriteOutcome:
    session = session_factory()
    try:
        result = write.apply(session)
        session.commit()
        return WriteOutcome(write=write, result=result)
    except Exception as e:
        session.rollback()
        logger.error("Deferred write failed", label=write.label, error=str(e), exc_info=True, **write.key)
        return WriteOutcome(write=write, error=e)
    finally:
        session.close()


def execute_pending_writes(
    writes: Iterable[PendingWrite],
    *,
    session_factory: Optional[sessionmaker] = None,
    max_workers: Optional[int] = None,
) -> list[WriteOutcome]:
    """Apply writes concurrently; outcomes are returned in submission order."""
    pending = list(writes)
    if not pending:
        return []
    factory = session_factory or database.SessionLocal
    workers = int(max_workers or SHIFT_COMPLETION_SETTINGS["max_write_workers"])
    workers = max(1, min(workers, len(pending)))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shift-completion-write") as pool:
        futures = [pool.submit(_apply, write, factory) for write in pending]
        outcomes = [f.result() for f in futures]

    failed = sum(1 for o in outcomes if not o.ok)
    logger.info("Deferred writes applied", total=len(outcomes), failed=failed, workers=workers)
    return outcomes


__all__ = ["PendingWrite", "WriteOutcome", "execute_pending_writes"]
