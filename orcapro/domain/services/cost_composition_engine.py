"""
Cost Composition Engine - Rolls a composition's items up into its cost.

Formula:
    material/labor/equipment = sum(snapshot price * coefficient) per input kind
    labor_with_charges       = labor_cost * (1 + social_charges_pct / 100)
    direct_cost              = material_cost + equipment_cost + labor_with_charges
    total_with_bdi           = direct_cost * (1 + bdi_pct / 100)

LABOR inputs feed labor, EQUIPMENT inputs feed equipment and everything
else (MATERIAL, SERVICE, nested compositions, unresolved references) feeds
material. A reference that cannot be resolved costs 0 and is reported as a
ReferenceIntegrityWarning instead of raising.

Every function is pure: item tuples are never modified in place, editing
helpers return a new Composition whose cost has been recomputed.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from orcapro.config import get_config
from orcapro.domain.entities import (
    Composition,
    CompositionCost,
    CompositionItem,
    CompositionItemType,
    Input,
    InputKind,
)
from orcapro.domain.entities.money import HUNDRED, ZERO, to_decimal
from orcapro.domain.exceptions import (
    CompositionCycleError,
    CompositionDepthError,
    ReferenceIntegrityWarning,
)
from .lookups import CompositionLookup, InputLookup

logger = logging.getLogger(__name__)


def compute_composition(
    items: Sequence[CompositionItem],
    social_charges_pct,
    bdi_pct,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
    owner_id: str = "",
) -> CompositionCost:
    """
    Compute the cost breakdown of a list of composition items.

    Args:
        items: Composition items with price snapshots
        social_charges_pct: Payroll burden percentage on labor
        bdi_pct: Markup percentage on direct cost
        resolve_input: Lookup used to find each input's kind
        resolve_composition: Optional lookup for COMPOSITION items; when
            omitted nested items are trusted as-is
        owner_id: Composition id, used in warnings

    Returns:
        CompositionCost with any reference warnings attached
    """
    social_charges_pct = to_decimal(social_charges_pct, "social_charges_pct")
    bdi_pct = to_decimal(bdi_pct, "bdi_pct")

    material = ZERO
    labor = ZERO
    equipment = ZERO
    warnings: List[ReferenceIntegrityWarning] = []

    for item in items:
        if item.item_type is CompositionItemType.COMPOSITION:
            if resolve_composition is not None and resolve_composition(item.item_id) is None:
                warnings.append(_dangling(item, owner_id))
                continue
            material += item.cost
            continue

        resolved = resolve_input(item.item_id)
        if resolved is None:
            warnings.append(_dangling(item, owner_id))
            continue

        if resolved.kind is InputKind.LABOR:
            labor += item.cost
        elif resolved.kind is InputKind.EQUIPMENT:
            equipment += item.cost
        else:
            material += item.cost

    labor_with_charges = labor * (1 + social_charges_pct / HUNDRED)
    direct = material + equipment + labor_with_charges
    total_with_bdi = direct * (1 + bdi_pct / HUNDRED)

    return CompositionCost(
        material_cost=material,
        labor_cost=labor,
        equipment_cost=equipment,
        labor_with_charges=labor_with_charges,
        direct_cost=direct,
        total_with_bdi=total_with_bdi,
        warnings=tuple(warnings),
    )


def _dangling(item: CompositionItem, owner_id: str) -> ReferenceIntegrityWarning:
    warning = ReferenceIntegrityWarning(item.item_id, item.item_type.value, owner_id)
    logger.warning(f"Dangling composition reference: {warning}")
    return warning


def recompute(
    composition: Composition,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> Composition:
    """Return a copy of the composition carrying a freshly computed cost."""
    cost = compute_composition(
        composition.items,
        composition.social_charges_pct,
        composition.bdi_pct,
        resolve_input,
        resolve_composition,
        owner_id=composition.id,
    )
    logger.debug(f"Recomputed composition {composition.code or composition.id}: {cost.total_with_bdi}")
    return replace(composition, cost=cost)


def new_composition(
    resolve_input: InputLookup,
    code: str = "",
    name: str = "",
    unit: str = "UN",
    items: Iterable[CompositionItem] = (),
    social_charges_pct=None,
    bdi_pct=None,
    **attributes,
) -> Composition:
    """
    Build a composition and compute its cost.

    Rates default to the configured composition defaults.
    """
    config = get_config()
    composition = Composition(
        code=code,
        name=name,
        unit=unit,
        items=tuple(items),
        social_charges_pct=(
            config.default_social_charges_pct if social_charges_pct is None else social_charges_pct
        ),
        bdi_pct=config.default_bdi_pct if bdi_pct is None else bdi_pct,
        **attributes,
    )
    return recompute(composition, resolve_input)


# =============================================================================
# Copy-on-write editing
# =============================================================================

def attach_input(
    composition: Composition,
    resolved: Input,
    quantity,
    resolve_input: InputLookup,
) -> Composition:
    """
    Add an input to the composition, snapshotting its current price.

    Attaching an input that is already part of the composition leaves the
    composition untouched.
    """
    if composition.find_item(resolved.id) is not None:
        return composition

    item = CompositionItem(
        item_id=resolved.id,
        item_type=CompositionItemType.INPUT,
        name=resolved.name,
        unit=resolved.unit,
        price=resolved.price,
        quantity=quantity,
    )
    return recompute(replace(composition, items=composition.items + (item,)), resolve_input)


def attach_composition(
    composition: Composition,
    nested: Composition,
    quantity,
    resolve_input: InputLookup,
    resolve_composition: CompositionLookup,
) -> Composition:
    """
    Add another composition as an item, snapshotting its total with BDI.

    Raises:
        CompositionCycleError: If nested is, or already contains, composition
    """
    if composition.find_item(nested.id) is not None:
        return composition

    if nested.id == composition.id:
        raise CompositionCycleError([composition.id, nested.id])
    path = _find_path(nested, composition.id, resolve_composition, [composition.id, nested.id])
    if path:
        raise CompositionCycleError(path)

    item = CompositionItem(
        item_id=nested.id,
        item_type=CompositionItemType.COMPOSITION,
        name=nested.name,
        unit=nested.unit,
        price=nested.total_with_bdi,
        quantity=quantity,
    )
    return recompute(
        replace(composition, items=composition.items + (item,)),
        resolve_input,
        resolve_composition,
    )


def _find_path(
    start: Composition,
    target_id: str,
    resolve_composition: CompositionLookup,
    path: List[str],
) -> Optional[List[str]]:
    """Depth-first search for target_id below start; returns the id chain."""
    seen = set()
    stack: List[Tuple[Composition, List[str]]] = [(start, path)]
    while stack:
        current, current_path = stack.pop()
        if current.id in seen:
            continue
        seen.add(current.id)
        for item in current.items:
            if item.item_type is not CompositionItemType.COMPOSITION:
                continue
            if item.item_id == target_id:
                return current_path + [target_id]
            child = resolve_composition(item.item_id)
            if child is not None:
                stack.append((child, current_path + [child.id]))
    return None


def update_item_quantity(
    composition: Composition,
    item_id: str,
    quantity,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> Composition:
    """Change the coefficient of the item referencing item_id."""
    items = tuple(
        replace(item, quantity=quantity) if item.item_id == item_id else item
        for item in composition.items
    )
    return recompute(replace(composition, items=items), resolve_input, resolve_composition)


def remove_item(
    composition: Composition,
    item_id: str,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> Composition:
    """Drop the item referencing item_id."""
    items = tuple(item for item in composition.items if item.item_id != item_id)
    return recompute(replace(composition, items=items), resolve_input, resolve_composition)


def set_rates(
    composition: Composition,
    social_charges_pct,
    bdi_pct,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> Composition:
    """Change social charges and BDI percentages."""
    updated = replace(composition, social_charges_pct=social_charges_pct, bdi_pct=bdi_pct)
    return recompute(updated, resolve_input, resolve_composition)


def refresh_prices(
    composition: Composition,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> Composition:
    """
    Re-snapshot item prices from the current inputs and nested compositions.

    Items whose reference no longer resolves keep their old snapshot.
    """
    items = []
    for item in composition.items:
        if item.item_type is CompositionItemType.INPUT:
            resolved = resolve_input(item.item_id)
            price = resolved.price if resolved is not None else item.price
        else:
            nested = resolve_composition(item.item_id) if resolve_composition else None
            price = nested.total_with_bdi if nested is not None else item.price
        items.append(replace(item, price=price) if price != item.price else item)
    return recompute(replace(composition, items=tuple(items)), resolve_input, resolve_composition)


# =============================================================================
# Expansion into inputs
# =============================================================================

@dataclass(frozen=True)
class ExplodedInput:
    """An input reached by expanding a composition, valued at current price."""

    input: Input
    quantity: Decimal

    @property
    def value(self) -> Decimal:
        return self.input.price * self.quantity


@dataclass(frozen=True)
class Explosion:
    lines: Tuple[ExplodedInput, ...] = ()
    warnings: Tuple[ReferenceIntegrityWarning, ...] = ()


def explode_composition(
    composition: Composition,
    quantity,
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
    max_depth: Optional[int] = None,
) -> Explosion:
    """
    Flatten a composition into the inputs it consumes.

    Quantities multiply down the tree: quantity * coefficient at every level.
    Nested compositions are followed with a visited-path guard.

    Args:
        composition: Composition to expand
        quantity: Units of the composition being consumed
        resolve_input: Input lookup
        resolve_composition: Composition lookup; nested items are skipped
            with a warning when it is not supplied
        max_depth: Nesting limit, defaults to composition.max_nesting_depth

    Returns:
        Explosion with one line per input occurrence and any warnings

    Raises:
        CompositionCycleError: If a composition contains itself
        CompositionDepthError: If nesting goes deeper than max_depth
    """
    if max_depth is None:
        max_depth = get_config().max_nesting_depth

    lines: List[ExplodedInput] = []
    warnings: List[ReferenceIntegrityWarning] = []
    _explode(
        composition,
        to_decimal(quantity, "quantity"),
        resolve_input,
        resolve_composition,
        [composition.id],
        max_depth,
        lines,
        warnings,
    )
    return Explosion(lines=tuple(lines), warnings=tuple(warnings))


def _explode(composition, quantity, resolve_input, resolve_composition,
             path, max_depth, lines, warnings):
    if len(path) > max_depth + 1:
        raise CompositionDepthError(path[0], max_depth)

    for item in composition.items:
        item_quantity = quantity * item.quantity

        if item.item_type is CompositionItemType.INPUT:
            resolved = resolve_input(item.item_id)
            if resolved is None:
                warnings.append(_dangling(item, composition.id))
                continue
            lines.append(ExplodedInput(input=resolved, quantity=item_quantity))
            continue

        nested = resolve_composition(item.item_id) if resolve_composition else None
        if nested is None:
            warnings.append(_dangling(item, composition.id))
            continue
        if nested.id in path:
            raise CompositionCycleError(path + [nested.id])
        _explode(nested, item_quantity, resolve_input, resolve_composition,
                 path + [nested.id], max_depth, lines, warnings)
