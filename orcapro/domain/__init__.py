"""
Domain Layer - Core business entities and calculation services for budgeting.

This module contains:
- entities/: Immutable domain objects (Input, Composition, Budget, Measurement, ...)
- services/: Pure calculation engines (composition rollup, budget totals,
  ABC classification, schedule allocation, measurement tracking)
"""

from .entities import (
    Input, InputKind, SourceKind,
    Composition, CompositionItem, CompositionItemType, CompositionCost,
    Budget, BudgetItem, BudgetStatus, BudgetTemplate, BudgetTotals,
    SchedulePeriod, ScheduleAllocation,
    Measurement, MeasurementItem, MeasurementStatus,
    AbcClass, AbcEntry, AbcInput, AbcSummary, AbcClassSummary,
)

__all__ = [
    'Input', 'InputKind', 'SourceKind',
    'Composition', 'CompositionItem', 'CompositionItemType', 'CompositionCost',
    'Budget', 'BudgetItem', 'BudgetStatus', 'BudgetTemplate', 'BudgetTotals',
    'SchedulePeriod', 'ScheduleAllocation',
    'Measurement', 'MeasurementItem', 'MeasurementStatus',
    'AbcClass', 'AbcEntry', 'AbcInput', 'AbcSummary', 'AbcClassSummary',
]
