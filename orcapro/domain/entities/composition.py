"""
Composition Entity - Unit-cost build-up ("recipe") for one unit of work.

A composition combines material, labor and equipment inputs. Each item
carries a price snapshot taken when the item was attached; later changes
to the referenced input do not flow in until prices are refreshed.

Derived costs live in a CompositionCost produced by the cost composition
engine. Editing a composition always goes through the engine, which hands
back a new object with a fresh cost.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple
from uuid import uuid4

from .input import SourceKind
from .money import ZERO, to_decimal


class CompositionItemType(Enum):
    """What a composition item points at."""
    INPUT = "INPUT"
    COMPOSITION = "COMPOSITION"


@dataclass(frozen=True)
class CompositionItem:
    """
    Reference to an Input (or nested Composition) with a coefficient.

    Attributes:
        item_id: Referenced Input or Composition id
        item_type: INPUT or COMPOSITION
        name: Denormalised display name
        unit: Denormalised unit
        price: Unit price snapshot copied at attach time
        quantity: Coefficient per unit of the parent composition
    """

    item_id: str
    item_type: CompositionItemType = CompositionItemType.INPUT
    name: str = ""
    unit: str = ""
    price: Decimal = Decimal("0")
    quantity: Decimal = Decimal("0")
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price, "price"))
        object.__setattr__(self, "quantity", to_decimal(self.quantity, "quantity"))
        if not isinstance(self.item_type, CompositionItemType):
            object.__setattr__(self, "item_type", CompositionItemType(str(self.item_type).upper()))

    @property
    def cost(self) -> Decimal:
        """Snapshot price times coefficient."""
        return self.price * self.quantity


@dataclass(frozen=True)
class CompositionCost:
    """Cost breakdown of a composition."""

    material_cost: Decimal = ZERO
    labor_cost: Decimal = ZERO
    equipment_cost: Decimal = ZERO
    labor_with_charges: Decimal = ZERO
    direct_cost: Decimal = ZERO
    total_with_bdi: Decimal = ZERO
    warnings: Tuple = ()

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'material_cost': float(self.material_cost),
            'labor_cost': float(self.labor_cost),
            'equipment_cost': float(self.equipment_cost),
            'labor_with_charges': float(self.labor_with_charges),
            'direct_cost': float(self.direct_cost),
            'total_with_bdi': float(self.total_with_bdi),
            'warnings': [str(w) for w in self.warnings],
        }


@dataclass(frozen=True)
class Composition:
    """
    Priced recipe for one unit of work.

    Attributes:
        id: Unique identifier
        code: Catalogue code
        name: Description
        unit: Unit of the composed service
        items: Inputs (or nested compositions) with coefficients
        social_charges_pct: Payroll burden applied to labor
        bdi_pct: Overhead-and-profit markup on direct cost
        source: Price base provenance
        category: Optional catalogue grouping (e.g. 'ALVENARIA')
        reference_region: Optional price reference region
        cost: Derived breakdown, set by the cost composition engine
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    code: str = ""
    name: str = ""
    unit: str = "UN"
    items: Tuple[CompositionItem, ...] = ()
    social_charges_pct: Decimal = Decimal("0")
    bdi_pct: Decimal = Decimal("0")
    source: SourceKind = SourceKind.OWN
    category: Optional[str] = None
    reference_region: Optional[str] = None
    cost: CompositionCost = field(default_factory=CompositionCost)

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(
            self, "social_charges_pct", to_decimal(self.social_charges_pct, "social_charges_pct")
        )
        object.__setattr__(self, "bdi_pct", to_decimal(self.bdi_pct, "bdi_pct"))
        object.__setattr__(self, "source", SourceKind.parse(self.source))

    @property
    def material_cost(self) -> Decimal:
        return self.cost.material_cost

    @property
    def labor_cost(self) -> Decimal:
        return self.cost.labor_cost

    @property
    def labor_with_charges(self) -> Decimal:
        return self.cost.labor_with_charges

    @property
    def equipment_cost(self) -> Decimal:
        return self.cost.equipment_cost

    @property
    def direct_cost(self) -> Decimal:
        return self.cost.direct_cost

    @property
    def total_with_bdi(self) -> Decimal:
        return self.cost.total_with_bdi

    def find_item(self, item_id: str) -> Optional[CompositionItem]:
        """Return the item referencing item_id, if any."""
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None
