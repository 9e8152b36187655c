"""Entry points for the shift completion job.

* ``run_once()``: the no-argument entry an external scheduler calls.
* ``handler(event, context)``: scheduled-invocation handler shape
  (``{"statusCode": 200, "body": ...}``); fatal errors propagate so the
  scheduler retries the whole run.
* ``ShiftCompletionScheduler``: in-process periodic runner on a daemon thread
  for deployments without an external timer.
* ``python -m app.jobs.scheduler [--loop] [--create-tables]``.
"""
from __future__ import annotations

import argparse
import threading
from typing import Any, Callable, Optional

from app.config import LOG_FILE, LOG_LEVEL, SCHEDULER_SETTINGS
from app.models.schemas.shift_completion import ShiftCompletionRunSummary
from app.services.shift_completion import run_shift_completion
from app.utils import get_logger, setup_logging

logger = get_logger(__name__)


def run_once() -> ShiftCompletionRunSummary:
    return run_shift_completion()


def handler(event: Any = None, context: Any = None) -> dict[str, Any]:
    summary = run_once()
    if summary.scanned == 0:
        body = "No scheduled applications to process."
    else:
        body = (
            f"Job completion check finished: {summary.completed} completed, "
            f"{summary.not_elapsed} pending, {sum(summary.skipped.values())} skipped, "
            f"{summary.failed_applications} failed."
        )
    return {"statusCode": 200, "body": body}


class ShiftCompletionScheduler:
    def __init__(self, *, interval_seconds: float | None = None, runner: Callable[[], ShiftCompletionRunSummary] = run_once):
        self.interval_seconds = float(interval_seconds or SCHEDULER_SETTINGS["interval_seconds"])
        self.runner = runner
        self.last_summary: Optional[ShiftCompletionRunSummary] = None
        self.consecutive_failures = 0
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():  # pragma: no cover
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="shift-completion-scheduler", daemon=True)
        self._thread.start()
        logger.info("Shift completion scheduler started", interval_seconds=self.interval_seconds)

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        logger.info("Shift completion scheduler stop requested")
        if self._thread is not None:
            self._thread.join(timeout)

    def tick(self) -> bool:
        """Run once; a failed run is logged and reported, never raised."""
        try:
            self.last_summary = self.runner()
            self.consecutive_failures = 0
            return True
        except Exception as e:
            self.consecutive_failures += 1
            logger.error(
                "Scheduled shift completion run failed",
                error=str(e),
                consecutive_failures=self.consecutive_failures,
                exc_info=True,
            )
            return False

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            ok = self.tick()
            wait = self.interval_seconds if ok else min(self.interval_seconds, float(SCHEDULER_SETTINGS["failure_pause_seconds"]))
            self._stop_event.wait(wait)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Complete elapsed shifts and settle referral bonuses.")
    parser.add_argument("--loop", action="store_true", help="keep running every SHIFT_COMPLETION_INTERVAL_SECONDS")
    parser.add_argument("--create-tables", action="store_true", help="create missing tables before running")
    args = parser.parse_args(argv)

    setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE, enable_console=True)

    if args.create_tables:
        from app.database import Base, engine
        import app.models.db  # noqa: F401
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")

    if not args.loop:
        summary = run_once()
        logger.info("Run summary", summary=summary.model_dump_json())
        return 0

    scheduler = ShiftCompletionScheduler()
    scheduler.start()
    try:
        while scheduler._thread is not None and scheduler._thread.is_alive():
            scheduler._thread.join(1.0)
    except KeyboardInterrupt:
        scheduler.stop(timeout=30)
    return 0


__all__ = ["run_once", "handler", "ShiftCompletionScheduler", "main"]


if __name__ == "__main__":
    raise SystemExit(main())
