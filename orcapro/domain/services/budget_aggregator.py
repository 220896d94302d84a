"""
Budget Aggregator - Rolls budget line items up into the budget totals.

Formula:
    subtotal       = sum(quantity * unit_price)
    total_discount = sum(quantity * unit_price * discount_pct / 100)
    total_tax      = sum(quantity * unit_price * tax_rate_pct / 100)
    bdi_amount     = subtotal * bdi_pct / 100
    grand_total    = subtotal - total_discount + total_tax + bdi_amount

Discount and tax are each taken against the raw line total; they do not
compound on each other.

Precondition: items have already passed boundary validation
(orcapro.domain.validation). Quantities <= 0 and percentages outside
[0, 100] are not clamped here.
"""
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence
from uuid import uuid4
import logging

from orcapro.domain.entities import Budget, BudgetItem, BudgetTemplate, BudgetTotals
from orcapro.domain.entities.money import ZERO, percent_of, to_decimal
from orcapro.domain.exceptions import BudgetItemNotFoundError

logger = logging.getLogger(__name__)


def compute_budget_totals(items: Sequence[BudgetItem], bdi_pct) -> BudgetTotals:
    """
    Compute the monetary totals of a list of line items.

    Args:
        items: Budget line items
        bdi_pct: Overhead-and-profit markup percentage

    Returns:
        BudgetTotals (all zeros for an empty list)
    """
    bdi_pct = to_decimal(bdi_pct, "bdi_pct")

    subtotal = ZERO
    total_discount = ZERO
    total_tax = ZERO
    for item in items:
        line_total = item.line_total
        subtotal += line_total
        total_discount += percent_of(line_total, item.discount_pct)
        total_tax += percent_of(line_total, item.tax_rate_pct)

    bdi_amount = percent_of(subtotal, bdi_pct)
    return BudgetTotals(
        subtotal=subtotal,
        total_discount=total_discount,
        total_tax=total_tax,
        bdi_amount=bdi_amount,
        grand_total=subtotal - total_discount + total_tax + bdi_amount,
    )


def recalculate(budget: Budget, touch: bool = False) -> Budget:
    """
    Return a copy of the budget with freshly computed totals.

    Args:
        budget: Budget to recalculate
        touch: Also bump updated_at
    """
    totals = compute_budget_totals(budget.items, budget.bdi_pct)
    changes = {'totals': totals}
    if touch:
        changes['updated_at'] = datetime.now(timezone.utc)
    logger.debug(f"Recalculated budget {budget.id}: total={totals.grand_total}")
    return replace(budget, **changes)


def strip_derived(budget: Budget) -> Budget:
    """Copy of the budget with derived totals reset to zero."""
    return replace(budget, totals=BudgetTotals())


# =============================================================================
# Copy-on-write item editing
# =============================================================================

def add_item(budget: Budget, item: BudgetItem) -> Budget:
    """Append a line item."""
    return recalculate(replace(budget, items=budget.items + (item,)), touch=True)


def update_item(budget: Budget, item_id: str, **changes) -> Budget:
    """
    Replace fields of one line item.

    Raises:
        BudgetItemNotFoundError: If item_id is not on the budget
    """
    if budget.find_item(item_id) is None:
        raise BudgetItemNotFoundError(item_id, budget.id)
    items = tuple(
        replace(item, **changes) if item.id == item_id else item
        for item in budget.items
    )
    return recalculate(replace(budget, items=items), touch=True)


def remove_item(budget: Budget, item_id: str) -> Budget:
    """Drop a line item. Measurements keep their history until reopened."""
    items = tuple(item for item in budget.items if item.id != item_id)
    return recalculate(replace(budget, items=items), touch=True)


def set_bdi(budget: Budget, bdi_pct) -> Budget:
    """Change the budget markup."""
    return recalculate(replace(budget, bdi_pct=bdi_pct), touch=True)


def budget_from_template(
    template: BudgetTemplate,
    client_id: str,
    valid_until=None,
    notes: Optional[str] = None,
) -> Budget:
    """
    Start a new budget from a template.

    Items are copied with fresh ids so the budget never shares line
    identities with the template or with other budgets built from it.
    """
    items: Iterable[BudgetItem] = (replace(item, id=str(uuid4())) for item in template.items)
    budget = Budget(
        client_id=client_id,
        items=tuple(items),
        bdi_pct=template.bdi_pct,
        valid_until=valid_until,
        notes=notes if notes is not None else template.notes,
    )
    return recalculate(budget)
