"""
Schedule Entities - Physical-financial schedule building blocks.

Allocations are sparse: a (stage, period) pair without an entry is 0%.
"""
from dataclasses import dataclass, field
import datetime
from decimal import Decimal
from uuid import uuid4

from .money import to_decimal


@dataclass(frozen=True)
class SchedulePeriod:
    """Time bucket of the schedule (typically a month). Ordered as defined."""

    id: str = field(default_factory=lambda: str(uuid4()))
    name: str = ""
    date: datetime.date = field(default_factory=datetime.date.today)


@dataclass(frozen=True)
class ScheduleAllocation:
    """Share of a stage's value executed in a period, 0-100."""

    stage: str
    period_id: str
    percentage: Decimal = Decimal("0")

    def __post_init__(self):
        object.__setattr__(self, "percentage", to_decimal(self.percentage, "percentage"))
