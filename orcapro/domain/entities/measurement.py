"""
Measurement Entity - Progress-billing snapshot of executed quantities.

Lifecycle: DRAFT (in memory, editable) -> SAVED (stored on the budget).
Editing a saved measurement produces a new draft that, once saved,
replaces the stored record with the same id.
"""
from dataclasses import dataclass, field
import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple
from uuid import uuid4

from .money import ZERO, to_decimal


class MeasurementStatus(Enum):
    DRAFT = "DRAFT"
    SAVED = "SAVED"


@dataclass(frozen=True)
class MeasurementItem:
    """Quantity of one budget line executed within the measurement."""

    item_id: str
    quantity_executed: Decimal = Decimal("0")

    def __post_init__(self):
        object.__setattr__(
            self, "quantity_executed", to_decimal(self.quantity_executed, "quantity_executed")
        )


@dataclass(frozen=True)
class Measurement:
    """
    Progress measurement for a budget.

    Attributes:
        id: Unique identifier (kept across re-saves)
        name: Display name, e.g. '1ª Medição'
        date: Reference date of the measurement
        items: Executed quantity per budget item
        notes: Free text
        status: DRAFT or SAVED
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    name: str = ""
    date: datetime.date = field(default_factory=datetime.date.today)
    items: Tuple[MeasurementItem, ...] = ()
    notes: str = ""
    status: MeasurementStatus = MeasurementStatus.DRAFT

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        if not isinstance(self.status, MeasurementStatus):
            object.__setattr__(self, "status", MeasurementStatus(str(self.status).upper()))

    @property
    def is_draft(self) -> bool:
        return self.status is MeasurementStatus.DRAFT

    def quantity_for(self, item_id: str) -> Decimal:
        """Executed quantity recorded for item_id (0 when absent)."""
        for item in self.items:
            if item.item_id == item_id:
                return item.quantity_executed
        return ZERO

    def find_item(self, item_id: str) -> Optional[MeasurementItem]:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None
