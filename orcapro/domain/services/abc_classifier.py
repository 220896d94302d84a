"""
ABC Classifier - Pareto ranking of cost contributors.

Contributors are sorted by value (descending) and walked while accumulating
their share of the total:

    cumulative % <= 80  -> A
    cumulative % <= 95  -> B
    otherwise           -> C

Limits come from the ``abc`` config section. Ties keep their input order,
so equal inputs always rank the same way. A non-positive total yields an
empty result rather than a division by zero.

Two caller-side modes are built on the one primitive:
- classify_budget_items(): line items ranked by line total
- classify_budget_inputs(): composition lines exploded into their inputs,
  aggregated by input id, then ranked
"""
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Tuple, Union
import logging

from orcapro.config import get_config
from orcapro.domain.entities import (
    AbcClass,
    AbcClassSummary,
    AbcEntry,
    AbcInput,
    AbcSummary,
    Budget,
)
from orcapro.domain.entities.money import HUNDRED, ZERO, dsum, to_decimal
from orcapro.domain.exceptions import ReferenceIntegrityWarning
from .cost_composition_engine import explode_composition
from .lookups import CompositionLookup, InputLookup

logger = logging.getLogger(__name__)

EntryLike = Union[AbcInput, Mapping]


def _as_abc_input(entry: EntryLike) -> AbcInput:
    if isinstance(entry, AbcInput):
        return entry
    return AbcInput(
        id=str(entry['id']),
        value=to_decimal(entry['value'], 'value'),
        label=str(entry.get('label', entry['id'])),
        kind=entry.get('kind'),
        quantity=entry.get('quantity'),
        unit=entry.get('unit'),
    )


def classify(
    entries: Iterable[EntryLike],
    class_a_limit: Optional[Decimal] = None,
    class_b_limit: Optional[Decimal] = None,
) -> List[AbcEntry]:
    """
    Rank and classify weighted contributors.

    Args:
        entries: AbcInput objects or mappings with 'id' and 'value'
            (optionally 'label', 'kind', 'quantity', 'unit')
        class_a_limit: Cumulative % closing class A (config default 80)
        class_b_limit: Cumulative % closing class B (config default 95)

    Returns:
        AbcEntry list, highest value first; empty when the total is <= 0
    """
    config = get_config()
    a_limit = config.abc_class_a_limit if class_a_limit is None else to_decimal(class_a_limit)
    b_limit = config.abc_class_b_limit if class_b_limit is None else to_decimal(class_b_limit)

    inputs = [_as_abc_input(entry) for entry in entries]
    total = dsum(entry.value for entry in inputs)
    if total <= 0:
        return []

    # sorted() is stable, so equal values keep their input order
    ranked = sorted(inputs, key=lambda entry: entry.value, reverse=True)

    result = []
    cumulative = ZERO
    for entry in ranked:
        cumulative += entry.value
        cumulative_pct = cumulative / total * HUNDRED
        if cumulative_pct <= a_limit:
            abc_class = AbcClass.A
        elif cumulative_pct <= b_limit:
            abc_class = AbcClass.B
        else:
            abc_class = AbcClass.C

        result.append(AbcEntry(
            id=entry.id,
            label=entry.label,
            value=entry.value,
            percentage=entry.value / total * HUNDRED,
            cumulative_percentage=cumulative_pct,
            abc_class=abc_class,
            kind=entry.kind,
            quantity=entry.quantity,
            unit=entry.unit,
        ))
    return result


def summarize(entries: Iterable[AbcEntry]) -> AbcSummary:
    """Count and total value per class."""
    entries = list(entries)
    total = dsum(entry.value for entry in entries)

    def _summary(abc_class: AbcClass) -> AbcClassSummary:
        members = [entry for entry in entries if entry.abc_class is abc_class]
        value = dsum(entry.value for entry in members)
        return AbcClassSummary(
            count=len(members),
            value=value,
            percentage=(value / total * HUNDRED) if total > 0 else ZERO,
        )

    return AbcSummary(
        a=_summary(AbcClass.A),
        b=_summary(AbcClass.B),
        c=_summary(AbcClass.C),
        total_value=total,
    )


# =============================================================================
# Budget usage modes
# =============================================================================

def classify_budget_items(budget: Budget) -> List[AbcEntry]:
    """Classify a budget's line items by quantity * unit price."""
    return classify(
        AbcInput(
            id=item.id,
            label=item.name,
            value=item.line_total,
            quantity=item.quantity,
            unit=item.unit,
        )
        for item in budget.items
    )


@dataclass(frozen=True)
class InputAbcResult:
    """Input-level curve plus the references that could not be expanded."""

    entries: Tuple[AbcEntry, ...]
    warnings: Tuple[ReferenceIntegrityWarning, ...] = ()


def aggregate_budget_inputs(
    budget: Budget,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> Tuple[List[AbcInput], List[ReferenceIntegrityWarning]]:
    """
    Expand a budget into the inputs it consumes, aggregated by input id.

    Lines referencing a composition are exploded (line quantity times each
    coefficient, down nested compositions). Exploded inputs are
    valued at their current catalog price. Lines referencing an input count
    directly at the line's own quantity times unit price. Ad-hoc
    lines without references are not part of the input curve.

    Returns:
        (aggregated AbcInput list in first-seen order, warnings)
    """
    totals: "OrderedDict[str, dict]" = OrderedDict()
    warnings: List[ReferenceIntegrityWarning] = []

    def _add(resolved, quantity, value):
        bucket = totals.setdefault(resolved.id, {
            'input': resolved, 'quantity': ZERO, 'value': ZERO,
        })
        bucket['quantity'] += quantity
        bucket['value'] += value

    for item in budget.items:
        if item.composition_id:
            composition = resolve_composition(item.composition_id) if resolve_composition else None
            if composition is None:
                warning = ReferenceIntegrityWarning(item.composition_id, "COMPOSITION", item.id)
                logger.warning(f"Skipping budget line in input ABC: {warning}")
                warnings.append(warning)
                continue
            explosion = explode_composition(
                composition, item.quantity, resolve_input, resolve_composition
            )
            warnings.extend(explosion.warnings)
            for line in explosion.lines:
                _add(line.input, line.quantity, line.value)
        elif item.product_id:
            resolved = resolve_input(item.product_id)
            if resolved is None:
                warning = ReferenceIntegrityWarning(item.product_id, "INPUT", item.id)
                logger.warning(f"Skipping budget line in input ABC: {warning}")
                warnings.append(warning)
                continue
            _add(resolved, item.quantity, item.line_total)

    aggregated = [
        AbcInput(
            id=input_id,
            label=bucket['input'].name,
            value=bucket['value'],
            kind=bucket['input'].kind.value,
            quantity=bucket['quantity'],
            unit=bucket['input'].unit,
        )
        for input_id, bucket in totals.items()
    ]
    return aggregated, warnings


def classify_budget_inputs(
    budget: Budget,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> InputAbcResult:
    """Classify the inputs consumed by a budget (ABC curve of inputs)."""
    aggregated, warnings = aggregate_budget_inputs(budget, resolve_input, resolve_composition)
    return InputAbcResult(entries=tuple(classify(aggregated)), warnings=tuple(warnings))
