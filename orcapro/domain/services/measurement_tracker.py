"""
Measurement Tracker - Accumulates executed quantities against the contract.

For every budget line of a measurement being edited:

    previous_accumulated = sum of the line's quantity in every *other*
                           stored measurement (any date)
    balance              = contracted - previous_accumulated - current
    current_value        = current * unit_price

A negative balance flags the line as exceeded. It is a warning, the save
is never blocked here.

Aggregate progress over all stored measurements:

    physical %  = sum(measured qty) / sum(contracted qty) * 100
    financial % = sum(measured qty * unit_price) / budget total * 100
"""
from dataclasses import dataclass, replace
import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
import logging

from orcapro.config import get_config
from orcapro.domain.entities import (
    Budget,
    BudgetItem,
    Measurement,
    MeasurementItem,
    MeasurementStatus,
)
from orcapro.domain.entities.money import HUNDRED, ZERO, dsum, percent_of, to_decimal
from orcapro.domain.exceptions import BudgetItemNotFoundError, MeasurementNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeasurementLine:
    """One budget line as seen from the measurement being edited."""

    item_id: str
    name: str
    unit: str
    unit_price: Decimal
    contracted_quantity: Decimal
    previous_accumulated: Decimal
    current_quantity: Decimal
    balance: Decimal
    current_value: Decimal

    @property
    def exceeded(self) -> bool:
        return self.balance < 0

    @property
    def accumulated_quantity(self) -> Decimal:
        return self.previous_accumulated + self.current_quantity


@dataclass(frozen=True)
class MeasurementSheet:
    """Billing sheet of a measurement with retention applied."""

    measurement: Measurement
    lines: Tuple[MeasurementLine, ...]
    subtotal: Decimal
    retention_pct: Decimal
    retention_amount: Decimal
    net_value: Decimal

    @property
    def exceeded_lines(self) -> List[MeasurementLine]:
        return [line for line in self.lines if line.exceeded]

    @property
    def has_warnings(self) -> bool:
        return any(line.exceeded for line in self.lines)


@dataclass(frozen=True)
class Progress:
    physical_progress_pct: Decimal
    financial_progress_pct: Decimal
    measured_quantity: Decimal
    contracted_quantity: Decimal
    measured_value: Decimal


# =============================================================================
# Line calculations
# =============================================================================

def previous_accumulated(
    item_id: str,
    measurements: Iterable[Measurement],
    excluding_id: Optional[str] = None,
) -> Decimal:
    """
    Quantity of item_id recorded by every stored measurement but one.

    Date order is not considered: any measurement whose id differs from
    excluding_id counts as previous.
    """
    return dsum(
        m.quantity_for(item_id)
        for m in measurements
        if m.id != excluding_id
    )


def balance(contracted_qty, previous_accumulated_qty, current_qty) -> Decimal:
    """Quantity still to be measured; negative when over-measured."""
    return (
        to_decimal(contracted_qty, 'contracted_qty')
        - to_decimal(previous_accumulated_qty, 'previous_accumulated')
        - to_decimal(current_qty, 'current_qty')
    )


def current_value(current_qty, unit_price) -> Decimal:
    """Billable value of the quantity measured now."""
    return to_decimal(current_qty, 'current_qty') * to_decimal(unit_price, 'unit_price')


def measure_line(
    item: BudgetItem,
    measurement: Measurement,
    measurements: Iterable[Measurement],
) -> MeasurementLine:
    """One budget line of measurement, accumulated against the other stored measurements."""
    previous = previous_accumulated(item.id, measurements, excluding_id=measurement.id)
    current = measurement.quantity_for(item.id)
    return MeasurementLine(
        item_id=item.id,
        name=item.name,
        unit=item.unit,
        unit_price=item.unit_price,
        contracted_quantity=item.quantity,
        previous_accumulated=previous,
        current_quantity=current,
        balance=balance(item.quantity, previous, current),
        current_value=current_value(current, item.unit_price),
    )


def build_sheet(
    budget: Budget,
    measurement: Measurement,
    retention_pct=None,
) -> MeasurementSheet:
    """
    Compute every line of a measurement against the budget.

    Args:
        budget: Budget holding the contract and the stored measurements
        measurement: Draft or stored measurement being looked at
        retention_pct: Contractual retention, config default when omitted

    Returns:
        MeasurementSheet with exceeded lines flagged
    """
    if retention_pct is None:
        retention_pct = get_config().default_retention_pct
    retention_pct = to_decimal(retention_pct, 'retention_pct')

    lines = []
    for item in budget.items:
        line = measure_line(item, measurement, budget.measurements)
        if line.exceeded:
            logger.warning(
                f"Measurement {measurement.name or measurement.id} exceeds contracted "
                f"quantity of item {item.id} by {-line.balance}"
            )
        lines.append(line)

    subtotal = dsum(line.current_value for line in lines)
    retention_amount = percent_of(subtotal, retention_pct)
    return MeasurementSheet(
        measurement=measurement,
        lines=tuple(lines),
        subtotal=subtotal,
        retention_pct=retention_pct,
        retention_amount=retention_amount,
        net_value=subtotal - retention_amount,
    )


def aggregate_progress(budget: Budget) -> Progress:
    """Physical and financial progress over every stored measurement."""
    prices = {item.id: item.unit_price for item in budget.items}

    measured_quantity = ZERO
    measured_value = ZERO
    for measurement in budget.measurements:
        for item in measurement.items:
            measured_quantity += item.quantity_executed
            measured_value += item.quantity_executed * prices.get(item.item_id, ZERO)

    contracted = dsum(item.quantity for item in budget.items)
    total = budget.total

    return Progress(
        physical_progress_pct=measured_quantity / contracted * HUNDRED if contracted > 0 else ZERO,
        financial_progress_pct=measured_value / total * HUNDRED if total > 0 else ZERO,
        measured_quantity=measured_quantity,
        contracted_quantity=contracted,
        measured_value=measured_value,
    )


# =============================================================================
# Lifecycle
# =============================================================================

def list_measurements(budget: Budget) -> List[Measurement]:
    """Stored measurements, most recent first."""
    return sorted(budget.measurements, key=lambda m: m.date, reverse=True)


def new_draft(
    budget: Budget,
    name: Optional[str] = None,
    on: Optional[datetime.date] = None,
    notes: str = "",
) -> Measurement:
    """Start a measurement with every budget line at quantity 0."""
    return Measurement(
        name=name or get_config().format_measurement_name(len(budget.measurements) + 1),
        date=on or datetime.date.today(),
        items=tuple(MeasurementItem(item_id=item.id) for item in budget.items),
        notes=notes,
        status=MeasurementStatus.DRAFT,
    )


def reconcile(measurement: Measurement, budget: Budget) -> Measurement:
    """
    Align a measurement's items with the budget's current lines.

    Lines missing from the measurement come in at 0, entries for lines no
    longer on the budget are dropped. Item order follows the budget.
    """
    items = tuple(
        measurement.find_item(item.id) or MeasurementItem(item_id=item.id)
        for item in budget.items
    )
    return replace(measurement, items=items)


def open_for_edit(budget: Budget, measurement_id: str) -> Measurement:
    """
    Open a stored measurement as a reconciled draft.

    Raises:
        MeasurementNotFoundError: If the id is not stored on the budget
    """
    stored = budget.find_measurement(measurement_id)
    if stored is None:
        raise MeasurementNotFoundError(measurement_id)
    return replace(reconcile(stored, budget), status=MeasurementStatus.DRAFT)


def update_quantity(measurement: Measurement, item_id: str, quantity) -> Measurement:
    """
    Set the executed quantity of one line in a draft.

    Raises:
        BudgetItemNotFoundError: If the draft has no entry for item_id
    """
    if measurement.find_item(item_id) is None:
        raise BudgetItemNotFoundError(item_id)
    items = tuple(
        MeasurementItem(item_id=item.item_id, quantity_executed=quantity)
        if item.item_id == item_id else item
        for item in measurement.items
    )
    return replace(measurement, items=items)


def save_measurement(budget: Budget, measurement: Measurement) -> Budget:
    """
    Store a measurement on the budget, replacing any record with its id.

    Returns:
        New budget; the stored copy is marked SAVED
    """
    saved = replace(measurement, status=MeasurementStatus.SAVED)
    others = tuple(m for m in budget.measurements if m.id != measurement.id)
    logger.info(f"Saving measurement {saved.name or saved.id} on budget {budget.id}")
    return replace(budget, measurements=others + (saved,))
