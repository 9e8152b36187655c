"""Core job configuration & tunable settlement rules.

All knobs that may evolve (scan page size, write concurrency, shift timezone,
bonus amount, scheduling interval) are centralized here so they can be
adjusted without diving into service logic. Values are read from environment
variables at import time; tests monkeypatch the dicts directly.
"""
from __future__ import annotations

import os

# ---------------------------- Shift Completion ---------------------------- #
SHIFT_COMPLETION_SETTINGS: dict[str, int | str] = {
	# Rows per page when scanning scheduled applications
	"scan_page_size": int(os.getenv("SCAN_PAGE_SIZE", "100")),
	# Upper bound for concurrently executing end-of-run writes
	"max_write_workers": int(os.getenv("MAX_WRITE_WORKERS", "4")),
	# Zone used to interpret naive "YYYY-MM-DDTHH:MM:SS" shift ends
	"shift_timezone": os.getenv("SHIFT_TIMEZONE", "UTC"),
}

# ----------------------------- Referral Bonus ----------------------------- #
REFERRAL_BONUS_SETTINGS: dict[str, int] = {
	# Whole-dollar amount credited to the referrer on first completed shift
	"bonus_amount": int(os.getenv("REFERRAL_BONUS_AMOUNT", "50")),
}

# -------------------------------- Scheduler ------------------------------- #
SCHEDULER_SETTINGS: dict[str, float] = {
	"interval_seconds": float(os.getenv("SHIFT_COMPLETION_INTERVAL_SECONDS", "900")),
	# Pause after a failed run inside the in-process loop
	"failure_pause_seconds": float(os.getenv("SHIFT_COMPLETION_FAILURE_PAUSE_SECONDS", "30")),
}

# --------------------------------- Logging -------------------------------- #
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str | None = os.getenv("LOG_FILE") or None

__all__ = [
	"SHIFT_COMPLETION_SETTINGS",
	"REFERRAL_BONUS_SETTINGS",
	"SCHEDULER_SETTINGS",
	"LOG_LEVEL",
	"LOG_FILE",
]
