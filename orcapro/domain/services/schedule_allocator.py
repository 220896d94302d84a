"""
Schedule Allocator - Physical-financial schedule across stages and periods.

Each stage's value (sum of quantity * unit price of its line items) is
spread over the schedule periods as percentages:

    period_total(p)     = sum over stages of stage_value * allocation% / 100
    cumulative_pct(p_k) = sum(period_total(p_j), j <= k) / budget_total * 100

budget_total is the sum of all stage values. Allocations are sparse, and a
stage whose percentages do not add up to 100 is reported, never corrected.
The baseline is a frozen copy of the allocations kept for comparison; it
never feeds the live totals.
"""
from dataclasses import dataclass, replace
import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import re

from orcapro.config import get_config
from orcapro.domain.entities import Budget, BudgetItem, ScheduleAllocation, SchedulePeriod
from orcapro.domain.entities.money import HUNDRED, ZERO, dsum, to_decimal
from orcapro.domain.exceptions import PeriodNotFoundError

logger = logging.getLogger(__name__)

# Leading number of a stage label, e.g. '2.0 Estrutura' -> 2.0
_LEADING_NUMBER = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


@dataclass(frozen=True)
class StageValue:
    name: str
    value: Decimal


@dataclass(frozen=True)
class StageValidation:
    """Allocation completeness of one stage."""

    stage: str
    total_percentage: Decimal
    is_valid: bool

    @property
    def missing_percentage(self) -> Decimal:
        return HUNDRED - self.total_percentage


@dataclass(frozen=True)
class PeriodSummary:
    period: SchedulePeriod
    total: Decimal
    cumulative_total: Decimal
    cumulative_percentage: Decimal


@dataclass(frozen=True)
class PeriodComparison:
    """Live plan against baseline for one period."""

    period: SchedulePeriod
    planned_total: Decimal
    baseline_total: Decimal
    planned_cumulative_pct: Decimal
    baseline_cumulative_pct: Decimal

    @property
    def variance(self) -> Decimal:
        return self.planned_total - self.baseline_total


@dataclass(frozen=True)
class ScheduleSummary:
    stages: Tuple[StageValue, ...]
    periods: Tuple[PeriodSummary, ...]
    validations: Tuple[StageValidation, ...]
    budget_total: Decimal

    @property
    def is_valid(self) -> bool:
        return all(v.is_valid for v in self.validations)

    @property
    def invalid_stages(self) -> List[str]:
        return [v.stage for v in self.validations if not v.is_valid]


# =============================================================================
# Stages
# =============================================================================

def stage_label(item: BudgetItem) -> str:
    """Stage of a line item, falling back to the configured default label."""
    if item.stage and item.stage.strip():
        return item.stage
    return get_config().default_stage_label


def stage_sort_key(label: str) -> tuple:
    """
    Numbers first (by value), then the remaining labels alphabetically.

    '2.0 Estrutura' < '10.0 Acabamento' < 'Sem Etapa'
    """
    match = _LEADING_NUMBER.match(label)
    if match:
        return (0, float(match.group(1)), label)
    return (1, 0.0, label)


def discover_stages(items: Iterable[BudgetItem]) -> List[StageValue]:
    """Group line items by stage and total their values, in stage order."""
    groups: Dict[str, Decimal] = {}
    for item in items:
        label = stage_label(item)
        groups[label] = groups.get(label, ZERO) + item.line_total
    return [StageValue(name=name, value=groups[name]) for name in sorted(groups, key=stage_sort_key)]


def stage_value(stage: str, items: Iterable[BudgetItem]) -> Decimal:
    """Sum of quantity * unit price of the items in a stage."""
    return dsum(item.line_total for item in items if stage_label(item) == stage)


# =============================================================================
# Allocations
# =============================================================================

def get_allocation(
    allocations: Iterable[ScheduleAllocation],
    stage: str,
    period_id: str,
) -> Decimal:
    """Percentage allocated to (stage, period); 0 when absent."""
    for allocation in allocations:
        if allocation.stage == stage and allocation.period_id == period_id:
            return allocation.percentage
    return ZERO


def allocate(
    allocations: Sequence[ScheduleAllocation],
    stage: str,
    period_id: str,
    percentage,
) -> Tuple[ScheduleAllocation, ...]:
    """
    Upsert the percentage of a stage in a period.

    A percentage of 0, None or '' removes the entry.
    """
    remaining = tuple(
        a for a in allocations if not (a.stage == stage and a.period_id == period_id)
    )
    if percentage is None or percentage == '':
        return remaining
    percentage = to_decimal(percentage, 'percentage')
    if percentage == 0:
        return remaining
    return remaining + (ScheduleAllocation(stage=stage, period_id=period_id, percentage=percentage),)


def validate_stage(
    stage: str,
    allocations: Iterable[ScheduleAllocation],
    tolerance: Optional[Decimal] = None,
) -> StageValidation:
    """Sum a stage's percentages; valid when within tolerance of 100."""
    if tolerance is None:
        tolerance = get_config().schedule_validation_tolerance
    total = dsum(a.percentage for a in allocations if a.stage == stage)
    return StageValidation(
        stage=stage,
        total_percentage=total,
        is_valid=abs(total - HUNDRED) < tolerance,
    )


def validate_schedule(budget: Budget) -> List[StageValidation]:
    """Validate every stage of the budget."""
    return [
        validate_stage(stage.name, budget.schedule_allocations)
        for stage in discover_stages(budget.items)
    ]


def period_total(
    period_id: str,
    stages: Iterable[StageValue],
    allocations: Sequence[ScheduleAllocation],
) -> Decimal:
    """Value executed in a period across all stages."""
    return dsum(
        stage.value * get_allocation(allocations, stage.name, period_id) / HUNDRED
        for stage in stages
    )


def period_totals(
    budget: Budget,
    allocations: Optional[Sequence[ScheduleAllocation]] = None,
) -> List[Decimal]:
    """
    Period totals in period order.

    Args:
        budget: Budget providing items and periods
        allocations: Allocation set to use; defaults to the live plan
    """
    if allocations is None:
        allocations = budget.schedule_allocations
    stages = discover_stages(budget.items)
    return [period_total(p.id, stages, allocations) for p in budget.schedule_periods]


def cumulative_percents(
    budget: Budget,
    allocations: Optional[Sequence[ScheduleAllocation]] = None,
) -> List[Decimal]:
    """Cumulative share of the budget executed by the end of each period."""
    budget_total = dsum(s.value for s in discover_stages(budget.items))
    return _cumulative(period_totals(budget, allocations), budget_total)


def _cumulative(totals: Sequence[Decimal], budget_total: Decimal) -> List[Decimal]:
    result = []
    running = ZERO
    for total in totals:
        running += total
        result.append(running / budget_total * HUNDRED if budget_total > 0 else ZERO)
    return result


def build_schedule(budget: Budget) -> ScheduleSummary:
    """Stage values, period totals, cumulative percentages and validations."""
    stages = discover_stages(budget.items)
    budget_total = dsum(s.value for s in stages)
    totals = [period_total(p.id, stages, budget.schedule_allocations) for p in budget.schedule_periods]
    cumulative_pcts = _cumulative(totals, budget_total)

    periods = []
    running = ZERO
    for period, total, pct in zip(budget.schedule_periods, totals, cumulative_pcts):
        running += total
        periods.append(PeriodSummary(
            period=period,
            total=total,
            cumulative_total=running,
            cumulative_percentage=pct,
        ))

    validations = tuple(validate_stage(s.name, budget.schedule_allocations) for s in stages)
    invalid = [v.stage for v in validations if not v.is_valid]
    if invalid:
        logger.debug(f"Budget {budget.id} has incompletely allocated stages: {invalid}")

    return ScheduleSummary(
        stages=tuple(stages),
        periods=tuple(periods),
        validations=validations,
        budget_total=budget_total,
    )


# =============================================================================
# Periods and baseline
# =============================================================================

def add_period(
    budget: Budget,
    name: Optional[str] = None,
    on: Optional[datetime.date] = None,
) -> Budget:
    """Append a period (default name 'Mês N'). Stage values are unaffected."""
    period = SchedulePeriod(
        name=name or get_config().format_period_name(len(budget.schedule_periods) + 1),
        date=on or datetime.date.today(),
    )
    return replace(budget, schedule_periods=budget.schedule_periods + (period,))


def remove_period(budget: Budget, period_id: str) -> Budget:
    """
    Remove a period together with every live and baseline allocation to it.

    Raises:
        PeriodNotFoundError: If the period is not on the budget
    """
    if not any(p.id == period_id for p in budget.schedule_periods):
        raise PeriodNotFoundError(period_id)
    return replace(
        budget,
        schedule_periods=tuple(p for p in budget.schedule_periods if p.id != period_id),
        schedule_allocations=tuple(a for a in budget.schedule_allocations if a.period_id != period_id),
        baseline_allocations=tuple(a for a in budget.baseline_allocations if a.period_id != period_id),
    )


def set_allocation(budget: Budget, stage: str, period_id: str, percentage) -> Budget:
    """Budget-level allocate()."""
    if not any(p.id == period_id for p in budget.schedule_periods):
        raise PeriodNotFoundError(period_id)
    return replace(
        budget,
        schedule_allocations=allocate(budget.schedule_allocations, stage, period_id, percentage),
    )


def snapshot_baseline(allocations: Iterable[ScheduleAllocation]) -> Tuple[ScheduleAllocation, ...]:
    """Independent copy of the allocations to keep as baseline."""
    return tuple(
        ScheduleAllocation(stage=a.stage, period_id=a.period_id, percentage=a.percentage)
        for a in allocations
    )


def save_baseline(budget: Budget) -> Budget:
    """Replace the budget's baseline with a snapshot of the live plan."""
    logger.info(f"Saving schedule baseline for budget {budget.id}")
    return replace(budget, baseline_allocations=snapshot_baseline(budget.schedule_allocations))


def compare_with_baseline(budget: Budget) -> List[PeriodComparison]:
    """Planned versus baseline totals and cumulative percentages per period."""
    planned = period_totals(budget)
    baseline = period_totals(budget, budget.baseline_allocations)
    planned_pct = cumulative_percents(budget)
    baseline_pct = cumulative_percents(budget, budget.baseline_allocations)
    return [
        PeriodComparison(
            period=period,
            planned_total=p_total,
            baseline_total=b_total,
            planned_cumulative_pct=p_pct,
            baseline_cumulative_pct=b_pct,
        )
        for period, p_total, b_total, p_pct, b_pct
        in zip(budget.schedule_periods, planned, baseline, planned_pct, baseline_pct)
    ]
