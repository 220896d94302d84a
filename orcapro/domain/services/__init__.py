"""
Domain Services - Pure calculation engines of the budget.

Each engine is a module of side-effect-free functions over the entities:
composition rollup, budget totals, ABC classification, schedule allocation
and measurement tracking.
"""

from . import (
    abc_classifier,
    budget_aggregator,
    cost_composition_engine,
    measurement_tracker,
    schedule_allocator,
)
from .lookups import lookup_from, no_lookup, InputLookup, CompositionLookup
from .cost_composition_engine import compute_composition, explode_composition
from .budget_aggregator import compute_budget_totals, recalculate
from .abc_classifier import classify, classify_budget_items, classify_budget_inputs
from .schedule_allocator import build_schedule, validate_stage, snapshot_baseline
from .measurement_tracker import aggregate_progress, build_sheet, previous_accumulated

__all__ = [
    'abc_classifier',
    'budget_aggregator',
    'cost_composition_engine',
    'measurement_tracker',
    'schedule_allocator',
    'lookup_from',
    'no_lookup',
    'InputLookup',
    'CompositionLookup',
    'compute_composition',
    'explode_composition',
    'compute_budget_totals',
    'recalculate',
    'classify',
    'classify_budget_items',
    'classify_budget_inputs',
    'build_schedule',
    'validate_stage',
    'snapshot_baseline',
    'aggregate_progress',
    'build_sheet',
    'previous_accumulated',
]
