"""
Reports Module - Tabular views of engine results for presentation.

Engine results stay Decimal; the frames built here are for display and
export only, so monetary columns are floats.
"""
from typing import Dict, Iterable, List
import logging

import pandas as pd

from orcapro.domain.entities import AbcClass, AbcEntry, Budget
from orcapro.domain.exceptions import MeasurementNotFoundError
from orcapro.domain.services import measurement_tracker, schedule_allocator
from orcapro.domain.services.abc_classifier import summarize

logger = logging.getLogger(__name__)

ABC_COLUMNS = ['id', 'label', 'value', 'percentage', 'cumulative_percentage', 'abc_class']


def money_to_display(value) -> str:
    """Format a value as Brazilian currency, e.g. R$ 1.234,56."""
    text = f"{float(value):,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def abc_frame(entries: Iterable[AbcEntry]) -> pd.DataFrame:
    """One row per ranked contributor, highest value first."""
    rows = [
        {
            'id': entry.id,
            'label': entry.label,
            'value': float(entry.value),
            'percentage': float(entry.percentage),
            'cumulative_percentage': float(entry.cumulative_percentage),
            'abc_class': entry.abc_class.value,
            'kind': entry.kind,
            'quantity': float(entry.quantity) if entry.quantity is not None else None,
            'unit': entry.unit,
        }
        for entry in entries
    ]
    if not rows:
        return pd.DataFrame(columns=ABC_COLUMNS)
    return pd.DataFrame(rows)


def abc_summary_rows(entries: Iterable[AbcEntry]) -> List[Dict]:
    """Count, value and share per class, formatted for display."""
    summary = summarize(entries)
    rows = []
    for abc_class in AbcClass:
        cls = summary.for_class(abc_class)
        rows.append({
            'class': abc_class.value,
            'count': cls.count,
            'value': money_to_display(cls.value),
            'percentage': f"{float(cls.percentage):.1f}%",
        })
    return rows


def schedule_frame(budget: Budget) -> pd.DataFrame:
    """
    Stage x period matrix of allocated percentages.

    Rows are stages in stage order with a 'value' column and a 'total_pct'
    column (sum of the stage's allocations). Trailing rows 'Total do
    período' and 'Acumulado %' carry the period totals and the cumulative
    percentage of the budget.
    """
    summary = schedule_allocator.build_schedule(budget)
    period_names = [p.name for p in budget.schedule_periods]

    rows = []
    for stage, validation in zip(summary.stages, summary.validations):
        row = {'stage': stage.name, 'value': float(stage.value)}
        for period in budget.schedule_periods:
            pct = schedule_allocator.get_allocation(
                budget.schedule_allocations, stage.name, period.id
            )
            row[period.name] = float(pct)
        row['total_pct'] = float(validation.total_percentage)
        row['is_valid'] = validation.is_valid
        rows.append(row)

    totals_row = {'stage': 'Total do período', 'value': float(summary.budget_total)}
    cumulative_row = {'stage': 'Acumulado %', 'value': None}
    for name, period in zip(period_names, summary.periods):
        totals_row[name] = float(period.total)
        cumulative_row[name] = float(period.cumulative_percentage)
    rows.extend([totals_row, cumulative_row])

    columns = ['stage', 'value'] + period_names + ['total_pct', 'is_valid']
    return pd.DataFrame(rows, columns=columns).set_index('stage')


def measurement_frame(budget: Budget, measurement_id: str, retention_pct=None) -> pd.DataFrame:
    """Measurement sheet lines of a stored measurement."""
    measurement = budget.find_measurement(measurement_id)
    if measurement is None:
        raise MeasurementNotFoundError(measurement_id)
    sheet = measurement_tracker.build_sheet(budget, measurement, retention_pct)

    frame = pd.DataFrame([
        {
            'item_id': line.item_id,
            'name': line.name,
            'unit': line.unit,
            'contracted': float(line.contracted_quantity),
            'previous_accumulated': float(line.previous_accumulated),
            'current': float(line.current_quantity),
            'balance': float(line.balance),
            'unit_price': float(line.unit_price),
            'current_value': float(line.current_value),
            'exceeded': line.exceeded,
        }
        for line in sheet.lines
    ])
    if sheet.has_warnings:
        logger.warning(
            f"Measurement {measurement.name} has {len(sheet.exceeded_lines)} exceeded line(s)"
        )
    return frame


def progress_rows(budget: Budget) -> List[Dict]:
    """One row per stored measurement, oldest first, with the running total."""
    rows = []
    running = 0.0
    ordered = sorted(budget.measurements, key=lambda m: m.date)
    for measurement in ordered:
        sheet = measurement_tracker.build_sheet(budget, measurement, retention_pct=0)
        running += float(sheet.subtotal)
        rows.append({
            'measurement': measurement.name,
            'date': measurement.date.isoformat(),
            'value': money_to_display(sheet.subtotal),
            'value_raw': float(sheet.subtotal),
            'accumulated_raw': running,
        })
    return rows
