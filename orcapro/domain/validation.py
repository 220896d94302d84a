"""
Boundary Validation - Sanitises form and import payloads before the engines.

The engines assume clean input (positive quantities, percentages within
[0, 100]). These pydantic models enforce that at the edge and turn the
payload into entities. Failures surface as domain ValidationError.

Payload keys may be snake_case or camelCase.
"""
import datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from orcapro.domain.entities import (
    Budget,
    BudgetItem,
    BudgetStatus,
    Composition,
    CompositionItem,
    CompositionItemType,
    Input,
    InputKind,
    Measurement,
    MeasurementItem,
    MeasurementStatus,
    ScheduleAllocation,
    SchedulePeriod,
    SourceKind,
)
from orcapro.domain.entities.money import to_decimal
from orcapro.domain.exceptions import ValidationError
from orcapro.domain.services import budget_aggregator, cost_composition_engine
from orcapro.domain.services.lookups import CompositionLookup, InputLookup


class _Payload(BaseModel):
    """Shared settings: camelCase aliases, floats read through str()."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator('*', mode='before')
    @classmethod
    def _floats_as_text(cls, value):
        if isinstance(value, float):
            return str(value)
        return value


# =============================================================================
# Payload Models
# =============================================================================

class InputPayload(_Payload):
    """Priced input form."""
    id: Optional[str] = None
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=500)
    unit: str = Field("UN", min_length=1, max_length=20)
    price: Decimal = Field(..., ge=0, description="Unit cost")
    kind: InputKind = InputKind.MATERIAL
    source: SourceKind = SourceKind.OWN
    category: Optional[str] = None
    region: Optional[str] = None

    @field_validator('source', mode='before')
    @classmethod
    def _parse_source(cls, value):
        return SourceKind.parse(value)


class CompositionItemPayload(_Payload):
    item_id: str = Field(..., min_length=1)
    item_type: CompositionItemType = CompositionItemType.INPUT
    quantity: Decimal = Field(..., gt=0, description="Coefficient per unit")
    price: Optional[Decimal] = Field(None, ge=0, description="Snapshot price")
    name: str = ""
    unit: str = ""


class CompositionPayload(_Payload):
    """Composition editor form."""
    id: Optional[str] = None
    code: str = Field("", max_length=50)
    name: str = Field(..., min_length=1, max_length=500)
    unit: str = Field("UN", min_length=1, max_length=20)
    items: List[CompositionItemPayload] = Field(default_factory=list)
    # Brazilian payroll burden routinely exceeds 100%
    social_charges_pct: Decimal = Field(Decimal("0"), ge=0)
    bdi_pct: Decimal = Field(Decimal("0"), ge=0, le=100)
    source: SourceKind = SourceKind.OWN
    category: Optional[str] = None
    reference_region: Optional[str] = None

    @field_validator('source', mode='before')
    @classmethod
    def _parse_source(cls, value):
        return SourceKind.parse(value)


class BudgetItemPayload(_Payload):
    """Budget line form."""
    id: Optional[str] = None
    name: str = Field(..., min_length=3, description="Line description")
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    discount_pct: Decimal = Field(Decimal("0"), ge=0, le=100)
    tax_rate_pct: Decimal = Field(Decimal("0"), ge=0, le=100)
    stage: Optional[str] = None
    product_id: Optional[str] = None
    composition_id: Optional[str] = None
    unit: str = "UN"
    description: Optional[str] = None


class SchedulePeriodPayload(_Payload):
    id: str = Field(..., min_length=1)
    name: str
    date: datetime.date


class ScheduleAllocationPayload(_Payload):
    stage: str = Field(..., min_length=1)
    period_id: str = Field(..., min_length=1)
    percentage: Decimal = Field(..., ge=0, le=100)


class MeasurementItemPayload(_Payload):
    item_id: str = Field(..., min_length=1)
    quantity_executed: Decimal = Field(Decimal("0"), ge=0)


class MeasurementPayload(_Payload):
    id: str = Field(..., min_length=1)
    name: str
    date: datetime.date
    items: List[MeasurementItemPayload] = Field(default_factory=list)
    notes: str = ""


class BudgetPayload(_Payload):
    """Budget form."""
    id: Optional[str] = None
    client_id: str = Field(..., min_length=1)
    status: BudgetStatus = BudgetStatus.DRAFT
    valid_until: Optional[datetime.date] = None
    notes: Optional[str] = None
    bdi_pct: Decimal = Field(Decimal("0"), ge=0, le=100)
    items: List[BudgetItemPayload] = Field(..., min_length=1)
    schedule_periods: List[SchedulePeriodPayload] = Field(default_factory=list)
    schedule_allocations: List[ScheduleAllocationPayload] = Field(default_factory=list)
    baseline_allocations: List[ScheduleAllocationPayload] = Field(default_factory=list)
    measurements: List[MeasurementPayload] = Field(default_factory=list)


# =============================================================================
# Conversion
# =============================================================================

def _parse(model: type, data: Mapping[str, Any]):
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get('loc', ())) or model.__name__
        raise ValidationError(field, first.get('msg', 'invalid value')) from e


def _without_id(payload: BaseModel, exclude: set = frozenset()) -> dict:
    data = payload.model_dump(exclude=set(exclude) | {'id'})
    if payload.id:
        data['id'] = payload.id
    return data


def validate_input(data: Mapping[str, Any]) -> Input:
    """Validate an input form and build the Input."""
    payload = _parse(InputPayload, data)
    return Input(**_without_id(payload))


def validate_budget_item(data: Mapping[str, Any]) -> BudgetItem:
    """Validate one budget line."""
    payload = _parse(BudgetItemPayload, data)
    return BudgetItem(**_without_id(payload))


def validate_composition(
    data: Mapping[str, Any],
    resolve_input: InputLookup,
    resolve_composition: Optional[CompositionLookup] = None,
) -> Composition:
    """
    Validate a composition form and compute its cost.

    Items without an explicit price snapshot take the current price of the
    referenced input or composition (0 when it cannot be resolved).
    """
    payload = _parse(CompositionPayload, data)

    items = []
    for item in payload.items:
        resolved = None
        if item.item_type is CompositionItemType.INPUT:
            resolved = resolve_input(item.item_id)
        elif resolve_composition is not None:
            resolved = resolve_composition(item.item_id)

        if item.price is not None:
            price = item.price
        elif resolved is None:
            price = Decimal("0")
        elif isinstance(resolved, Composition):
            price = resolved.total_with_bdi
        else:
            price = resolved.price

        items.append(CompositionItem(
            item_id=item.item_id,
            item_type=item.item_type,
            name=item.name or (resolved.name if resolved else ""),
            unit=item.unit or (resolved.unit if resolved else ""),
            price=price,
            quantity=item.quantity,
        ))

    fields = _without_id(payload, exclude={'items'})
    composition = Composition(items=tuple(items), **fields)
    return cost_composition_engine.recompute(composition, resolve_input, resolve_composition)


def validate_budget(data: Mapping[str, Any]) -> Budget:
    """
    Validate a budget form and build the Budget with its totals.

    Raises:
        ValidationError: On the first offending field
    """
    payload = _parse(BudgetPayload, data)

    budget = Budget(
        client_id=payload.client_id,
        status=payload.status,
        valid_until=payload.valid_until,
        notes=payload.notes,
        bdi_pct=payload.bdi_pct,
        items=tuple(BudgetItem(**_without_id(item)) for item in payload.items),
        schedule_periods=tuple(
            SchedulePeriod(id=p.id, name=p.name, date=p.date) for p in payload.schedule_periods
        ),
        schedule_allocations=tuple(
            ScheduleAllocation(stage=a.stage, period_id=a.period_id, percentage=a.percentage)
            for a in payload.schedule_allocations
        ),
        baseline_allocations=tuple(
            ScheduleAllocation(stage=a.stage, period_id=a.period_id, percentage=a.percentage)
            for a in payload.baseline_allocations
        ),
        measurements=tuple(
            Measurement(
                id=m.id,
                name=m.name,
                date=m.date,
                notes=m.notes,
                status=MeasurementStatus.SAVED,
                items=tuple(
                    MeasurementItem(item_id=i.item_id, quantity_executed=i.quantity_executed)
                    for i in m.items
                ),
            )
            for m in payload.measurements
        ),
        **({'id': payload.id} if payload.id else {}),
    )
    return budget_aggregator.recalculate(budget)


def ensure_percentage(value, field: str = "percentage") -> Decimal:
    """
    Check a single percentage from an inline edit.

    Raises:
        ValidationError: If the value is not numeric or outside [0, 100]
    """
    try:
        number = to_decimal(value, field)
    except TypeError as e:
        raise ValidationError(field, str(e)) from e
    if number < 0 or number > 100:
        raise ValidationError(field, "must be between 0 and 100")
    return number
