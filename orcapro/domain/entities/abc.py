"""
ABC Entities - Pareto classification results. Derived, never persisted.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from .money import ZERO


class AbcClass(Enum):
    A = "A"
    B = "B"
    C = "C"


@dataclass(frozen=True)
class AbcInput:
    """Weighted contributor fed to the classifier."""

    id: str
    value: Decimal
    label: str = ""
    kind: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit: Optional[str] = None


@dataclass(frozen=True)
class AbcEntry:
    """Classified contributor."""

    id: str
    label: str
    value: Decimal
    percentage: Decimal
    cumulative_percentage: Decimal
    abc_class: AbcClass
    kind: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'label': self.label,
            'value': float(self.value),
            'percentage': float(self.percentage),
            'cumulative_percentage': float(self.cumulative_percentage),
            'class': self.abc_class.value,
            'kind': self.kind,
            'quantity': float(self.quantity) if self.quantity is not None else None,
            'unit': self.unit,
        }


@dataclass(frozen=True)
class AbcClassSummary:
    count: int = 0
    value: Decimal = ZERO
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class AbcSummary:
    """Count and value per class."""

    a: AbcClassSummary
    b: AbcClassSummary
    c: AbcClassSummary
    total_value: Decimal = ZERO

    def for_class(self, abc_class: AbcClass) -> AbcClassSummary:
        return {AbcClass.A: self.a, AbcClass.B: self.b, AbcClass.C: self.c}[abc_class]
