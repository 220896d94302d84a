# OrcaPro Budget Engine - Modules
from .budget_state import BudgetState
from .reports import (
    abc_frame,
    abc_summary_rows,
    measurement_frame,
    money_to_display,
    progress_rows,
    schedule_frame,
)

__all__ = [
    "BudgetState",
    "abc_frame",
    "abc_summary_rows",
    "measurement_frame",
    "money_to_display",
    "progress_rows",
    "schedule_frame",
]
