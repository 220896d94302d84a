"""
Budget Entity - Client-facing priced bill of line items.

The budget is the shared aggregate of the engine: line items, BDI,
the physical-financial schedule and the progress measurements all hang
off it. Totals are derived by the budget aggregator and carried in a
BudgetTotals value; they are never edited on their own.
"""
from dataclasses import dataclass, field
import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple
from uuid import uuid4

from .measurement import Measurement
from .money import ZERO, to_decimal
from .schedule import ScheduleAllocation, SchedulePeriod


class BudgetStatus(Enum):
    """Commercial status of a budget."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class BudgetItem:
    """
    Line item of a budget.

    Attributes:
        id: Unique identifier
        name: Description shown to the client
        quantity: Contracted quantity
        unit_price: Resolved unit price
        discount_pct: Discount percentage 0-100
        tax_rate_pct: Tax percentage 0-100
        stage: Work-breakdown label (e.g. '2.0 Estrutura')
        product_id: Referenced Input, when the line is a single input
        composition_id: Referenced Composition, when the line is a service
        unit: Unit of measure
        description: Optional long text
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    name: str = ""
    quantity: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    discount_pct: Decimal = Decimal("0")
    tax_rate_pct: Decimal = Decimal("0")
    stage: Optional[str] = None
    product_id: Optional[str] = None
    composition_id: Optional[str] = None
    unit: str = "UN"
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "quantity", to_decimal(self.quantity, "quantity"))
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price, "unit_price"))
        object.__setattr__(self, "discount_pct", to_decimal(self.discount_pct, "discount_pct"))
        object.__setattr__(self, "tax_rate_pct", to_decimal(self.tax_rate_pct, "tax_rate_pct"))

    @property
    def line_total(self) -> Decimal:
        """Quantity times unit price, before discount, tax and BDI."""
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class BudgetTotals:
    """Derived monetary totals of a budget."""

    subtotal: Decimal = ZERO
    total_discount: Decimal = ZERO
    total_tax: Decimal = ZERO
    bdi_amount: Decimal = ZERO
    grand_total: Decimal = ZERO

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'subtotal': float(self.subtotal),
            'total_discount': float(self.total_discount),
            'total_tax': float(self.total_tax),
            'bdi_amount': float(self.bdi_amount),
            'grand_total': float(self.grand_total),
        }


@dataclass(frozen=True)
class Budget:
    """
    Budget aggregate.

    Attributes:
        id: Unique identifier
        client_id: Owning client
        items: Line items
        bdi_pct: Overhead-and-profit markup over the subtotal
        status: Commercial status
        valid_until: Proposal expiry date
        notes: Free text
        schedule_periods: Ordered periods of the physical-financial schedule
        schedule_allocations: Live (stage, period) -> % plan
        baseline_allocations: Frozen copy of a past plan, for comparison only
        measurements: Saved progress measurements
        totals: Derived totals, set by the budget aggregator
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    client_id: str = ""
    items: Tuple[BudgetItem, ...] = ()
    bdi_pct: Decimal = Decimal("0")
    status: BudgetStatus = BudgetStatus.DRAFT
    valid_until: Optional[datetime.date] = None
    notes: Optional[str] = None
    schedule_periods: Tuple[SchedulePeriod, ...] = ()
    schedule_allocations: Tuple[ScheduleAllocation, ...] = ()
    baseline_allocations: Tuple[ScheduleAllocation, ...] = ()
    measurements: Tuple[Measurement, ...] = ()
    created_at: datetime.datetime = field(default_factory=_utcnow)
    updated_at: datetime.datetime = field(default_factory=_utcnow)
    totals: BudgetTotals = field(default_factory=BudgetTotals)

    def __post_init__(self):
        for name in ("items", "schedule_periods", "schedule_allocations",
                     "baseline_allocations", "measurements"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        object.__setattr__(self, "bdi_pct", to_decimal(self.bdi_pct, "bdi_pct"))
        if not isinstance(self.status, BudgetStatus):
            object.__setattr__(self, "status", BudgetStatus(str(self.status).upper()))

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def total_discount(self) -> Decimal:
        return self.totals.total_discount

    @property
    def total_tax(self) -> Decimal:
        return self.totals.total_tax

    @property
    def total(self) -> Decimal:
        return self.totals.grand_total

    def find_item(self, item_id: str) -> Optional[BudgetItem]:
        """Return the line item with item_id, if any."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_measurement(self, measurement_id: str) -> Optional[Measurement]:
        for measurement in self.measurements:
            if measurement.id == measurement_id:
                return measurement
        return None


@dataclass(frozen=True)
class BudgetTemplate:
    """Reusable set of line items and BDI for new budgets."""

    id: str = field(default_factory=lambda: str(uuid4()))
    name: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    items: Tuple[BudgetItem, ...] = ()
    bdi_pct: Decimal = Decimal("0")
    notes: Optional[str] = None
    created_at: datetime.datetime = field(default_factory=_utcnow)
    updated_at: datetime.datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "bdi_pct", to_decimal(self.bdi_pct, "bdi_pct"))
