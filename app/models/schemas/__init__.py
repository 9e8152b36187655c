from .shift_completion import SettlementResult, ShiftCompletionRunSummary, WriteFailure

__all__ = [
    "SettlementResult",
    "ShiftCompletionRunSummary",
    "WriteFailure",
]
