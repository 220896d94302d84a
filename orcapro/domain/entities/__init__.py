"""
Domain Entities - Core immutable business objects.
"""

from .input import Input, InputKind, SourceKind
from .composition import Composition, CompositionItem, CompositionItemType, CompositionCost
from .budget import Budget, BudgetItem, BudgetStatus, BudgetTemplate, BudgetTotals
from .schedule import SchedulePeriod, ScheduleAllocation
from .measurement import Measurement, MeasurementItem, MeasurementStatus
from .abc import AbcClass, AbcEntry, AbcInput, AbcSummary, AbcClassSummary

__all__ = [
    'Input', 'InputKind', 'SourceKind',
    'Composition', 'CompositionItem', 'CompositionItemType', 'CompositionCost',
    'Budget', 'BudgetItem', 'BudgetStatus', 'BudgetTemplate', 'BudgetTotals',
    'SchedulePeriod', 'ScheduleAllocation',
    'Measurement', 'MeasurementItem', 'MeasurementStatus',
    'AbcClass', 'AbcEntry', 'AbcInput', 'AbcSummary', 'AbcClassSummary',
]
