"""
Input Entity - Priced resource used to build compositions.

Provenance is a tagged variant (SourceKind) sharing one capability set,
whatever the price base the input came from.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from .money import to_decimal


class InputKind(Enum):
    """Cost family of a priced input."""
    MATERIAL = "MATERIAL"
    LABOR = "LABOR"
    EQUIPMENT = "EQUIPMENT"
    SERVICE = "SERVICE"


class SourceKind(Enum):
    """Price base an input or composition was taken from."""
    SINAPI = "SINAPI"
    ORSE = "ORSE"
    SBC = "SBC"
    OWN = "OWN"
    INTERNAL = "INTERNAL"

    @classmethod
    def parse(cls, value) -> "SourceKind":
        """Accept enum members, names, and the legacy 'PROPRIA' alias."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.OWN
        name = str(value).upper()
        if name == "PROPRIA":
            return cls.OWN
        return cls(name)


@dataclass(frozen=True)
class Input:
    """
    Priced resource snapshot.

    Attributes:
        id: Unique identifier
        code: Catalogue code (e.g. SINAPI code)
        name: Description
        unit: Unit of measure
        price: Current unit cost
        kind: Cost family (material, labor, equipment, service)
        source: Price base provenance
        category: Optional catalogue grouping
        region: Optional reference region (e.g. 'SP')
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    code: str = ""
    name: str = ""
    unit: str = "UN"
    price: Decimal = Decimal("0")
    kind: InputKind = InputKind.MATERIAL
    source: SourceKind = SourceKind.OWN
    category: Optional[str] = None
    region: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price, "price"))
        if not isinstance(self.kind, InputKind):
            object.__setattr__(self, "kind", InputKind(str(self.kind).upper()))
        object.__setattr__(self, "source", SourceKind.parse(self.source))
