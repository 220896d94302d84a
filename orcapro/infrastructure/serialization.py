"""
Document Serialization - Persisted shape of the aggregates.

Repositories store budgets, templates, compositions and inputs as JSON
documents. Keys are camelCase, collections are arrays, dates and times are
ISO-8601 strings and decimals are strings so no precision is lost.
The engine itself only ever sees entities.
"""
import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from orcapro.domain.entities import (
    Budget,
    BudgetItem,
    BudgetStatus,
    BudgetTemplate,
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


def _dec(value: Decimal) -> str:
    return str(value)


def _date(value: Optional[datetime.date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Optional[str]) -> Optional[datetime.date]:
    if not value:
        return None
    # Datetimes stored by older clients carry a time part
    return datetime.date.fromisoformat(value[:10])


def _parse_datetime(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    return datetime.datetime.fromisoformat(value.replace('Z', '+00:00'))


# =============================================================================
# Inputs and compositions
# =============================================================================

def input_to_document(entity: Input) -> Dict[str, Any]:
    return {
        'id': entity.id,
        'code': entity.code,
        'name': entity.name,
        'unit': entity.unit,
        'price': _dec(entity.price),
        'type': entity.kind.value,
        'source': entity.source.value,
        'category': entity.category,
        'region': entity.region,
    }


def input_from_document(doc: Dict[str, Any]) -> Input:
    return Input(
        id=doc['id'],
        code=doc.get('code', ''),
        name=doc.get('name', ''),
        unit=doc.get('unit', 'UN'),
        price=doc.get('price', '0'),
        kind=InputKind(doc.get('type', 'MATERIAL')),
        source=SourceKind.parse(doc.get('source')),
        category=doc.get('category'),
        region=doc.get('region'),
    )


def composition_to_document(entity: Composition) -> Dict[str, Any]:
    """Derived costs are written for readers of the raw store only."""
    return {
        'id': entity.id,
        'code': entity.code,
        'name': entity.name,
        'unit': entity.unit,
        'items': [
            {
                'id': item.id,
                'type': item.item_type.value,
                'itemId': item.item_id,
                'name': item.name,
                'unit': item.unit,
                'price': _dec(item.price),
                'quantity': _dec(item.quantity),
            }
            for item in entity.items
        ],
        'socialCharges': _dec(entity.social_charges_pct),
        'bdi': _dec(entity.bdi_pct),
        'source': entity.source.value,
        'category': entity.category,
        'referenceRegion': entity.reference_region,
        'materialCost': _dec(entity.material_cost),
        'laborCost': _dec(entity.labor_cost),
        'equipmentCost': _dec(entity.equipment_cost),
        'totalCost': _dec(entity.direct_cost),
        'totalWithBDI': _dec(entity.total_with_bdi),
    }


def composition_from_document(doc: Dict[str, Any]) -> Composition:
    """
    Rebuild a composition. Stored derived costs are ignored; callers
    recompute through the cost composition engine.
    """
    return Composition(
        id=doc['id'],
        code=doc.get('code', ''),
        name=doc.get('name', ''),
        unit=doc.get('unit', 'UN'),
        items=tuple(
            CompositionItem(
                id=item.get('id') or item['itemId'],
                item_id=item['itemId'],
                item_type=CompositionItemType(item.get('type', 'INPUT')),
                name=item.get('name', ''),
                unit=item.get('unit', ''),
                price=item.get('price', '0'),
                quantity=item.get('quantity', '0'),
            )
            for item in doc.get('items', [])
        ),
        social_charges_pct=doc.get('socialCharges', '0'),
        bdi_pct=doc.get('bdi', '0'),
        source=SourceKind.parse(doc.get('source')),
        category=doc.get('category'),
        reference_region=doc.get('referenceRegion'),
    )


# =============================================================================
# Budgets
# =============================================================================

def _item_to_document(item: BudgetItem) -> Dict[str, Any]:
    return {
        'id': item.id,
        'productId': item.product_id,
        'compositionId': item.composition_id,
        'name': item.name,
        'description': item.description,
        'stage': item.stage,
        'unit': item.unit,
        'quantity': _dec(item.quantity),
        'unitPrice': _dec(item.unit_price),
        'discountPct': _dec(item.discount_pct),
        'taxRatePct': _dec(item.tax_rate_pct),
    }


def _item_from_document(doc: Dict[str, Any]) -> BudgetItem:
    return BudgetItem(
        id=doc['id'],
        product_id=doc.get('productId'),
        composition_id=doc.get('compositionId'),
        name=doc.get('name', ''),
        description=doc.get('description'),
        stage=doc.get('stage'),
        unit=doc.get('unit', 'UN'),
        quantity=doc.get('quantity', '0'),
        unit_price=doc.get('unitPrice', '0'),
        discount_pct=doc.get('discountPct', '0'),
        tax_rate_pct=doc.get('taxRatePct', '0'),
    )


def _allocation_to_document(allocation: ScheduleAllocation) -> Dict[str, Any]:
    return {
        'stage': allocation.stage,
        'periodId': allocation.period_id,
        'percentage': _dec(allocation.percentage),
    }


def _allocation_from_document(doc: Dict[str, Any]) -> ScheduleAllocation:
    return ScheduleAllocation(
        stage=doc['stage'],
        period_id=doc['periodId'],
        percentage=doc.get('percentage', '0'),
    )


def _measurement_to_document(measurement: Measurement) -> Dict[str, Any]:
    return {
        'id': measurement.id,
        'name': measurement.name,
        'date': _date(measurement.date),
        'notes': measurement.notes,
        'items': [
            {'itemId': item.item_id, 'quantity': _dec(item.quantity_executed)}
            for item in measurement.items
        ],
    }


def _measurement_from_document(doc: Dict[str, Any]) -> Measurement:
    return Measurement(
        id=doc['id'],
        name=doc.get('name', ''),
        date=_parse_date(doc.get('date')) or datetime.date.today(),
        notes=doc.get('notes') or '',
        status=MeasurementStatus.SAVED,
        items=tuple(
            MeasurementItem(item_id=item['itemId'], quantity_executed=item.get('quantity', '0'))
            for item in doc.get('items', [])
        ),
    )


def budget_to_document(budget: Budget) -> Dict[str, Any]:
    return {
        'id': budget.id,
        'clientId': budget.client_id,
        'status': budget.status.value,
        'validUntil': _date(budget.valid_until),
        'notes': budget.notes,
        'bdi': _dec(budget.bdi_pct),
        'items': [_item_to_document(item) for item in budget.items],
        'schedulePeriods': [
            {'id': p.id, 'name': p.name, 'date': _date(p.date)}
            for p in budget.schedule_periods
        ],
        'scheduleAllocations': [_allocation_to_document(a) for a in budget.schedule_allocations],
        'baselineAllocations': [_allocation_to_document(a) for a in budget.baseline_allocations],
        'measurements': [_measurement_to_document(m) for m in budget.measurements],
        'subtotal': _dec(budget.totals.subtotal),
        'totalDiscount': _dec(budget.totals.total_discount),
        'totalTax': _dec(budget.totals.total_tax),
        'bdiAmount': _dec(budget.totals.bdi_amount),
        'total': _dec(budget.totals.grand_total),
        'createdAt': budget.created_at.isoformat(),
        'updatedAt': budget.updated_at.isoformat(),
    }


def budget_from_document(doc: Dict[str, Any]) -> Budget:
    """
    Rebuild a budget. Stored totals are ignored; callers recompute them
    through the budget aggregator.
    """
    extra = {}
    created_at = _parse_datetime(doc.get('createdAt'))
    updated_at = _parse_datetime(doc.get('updatedAt'))
    if created_at:
        extra['created_at'] = created_at
    if updated_at:
        extra['updated_at'] = updated_at

    return Budget(
        id=doc['id'],
        client_id=doc.get('clientId', ''),
        status=BudgetStatus(doc.get('status', 'DRAFT')),
        valid_until=_parse_date(doc.get('validUntil')),
        notes=doc.get('notes'),
        bdi_pct=doc.get('bdi', '0'),
        items=tuple(_item_from_document(item) for item in doc.get('items', [])),
        schedule_periods=tuple(
            SchedulePeriod(
                id=p['id'],
                name=p.get('name', ''),
                date=_parse_date(p.get('date')) or datetime.date.today(),
            )
            for p in doc.get('schedulePeriods', [])
        ),
        schedule_allocations=tuple(
            _allocation_from_document(a) for a in doc.get('scheduleAllocations', [])
        ),
        baseline_allocations=tuple(
            _allocation_from_document(a) for a in doc.get('baselineAllocations', [])
        ),
        measurements=tuple(_measurement_from_document(m) for m in doc.get('measurements', [])),
        **extra,
    )


def template_to_document(template: BudgetTemplate) -> Dict[str, Any]:
    return {
        'id': template.id,
        'name': template.name,
        'description': template.description,
        'category': template.category,
        'items': [_item_to_document(item) for item in template.items],
        'bdi': _dec(template.bdi_pct),
        'notes': template.notes,
        'createdAt': template.created_at.isoformat(),
        'updatedAt': template.updated_at.isoformat(),
    }


def template_from_document(doc: Dict[str, Any]) -> BudgetTemplate:
    extra = {}
    for key, attr in (('createdAt', 'created_at'), ('updatedAt', 'updated_at')):
        parsed = _parse_datetime(doc.get(key))
        if parsed:
            extra[attr] = parsed
    return BudgetTemplate(
        id=doc['id'],
        name=doc.get('name', ''),
        description=doc.get('description'),
        category=doc.get('category'),
        items=tuple(_item_from_document(item) for item in doc.get('items', [])),
        bdi_pct=doc.get('bdi', '0'),
        notes=doc.get('notes'),
        **extra,
    )
