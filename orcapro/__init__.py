"""OrcaPro budget engine: compositions, budgets, ABC curves, schedules and measurements."""

__version__ = "1.0.0"
