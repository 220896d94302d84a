"""
Shared fixtures for the budget engine tests.
"""
import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from orcapro.domain.entities import (
    Budget,
    BudgetItem,
    Composition,
    CompositionItem,
    Input,
    InputKind,
    Measurement,
    MeasurementItem,
    MeasurementStatus,
    ScheduleAllocation,
    SchedulePeriod,
)
from orcapro.domain.services import budget_aggregator
from orcapro.domain.services.lookups import lookup_from
from orcapro.models import Base


# =============================================================================
# Catalog
# =============================================================================

@pytest.fixture
def pedreiro():
    return Input(id="in-pedreiro", code="88309", name="Pedreiro", unit="H",
                 price=Decimal("10"), kind=InputKind.LABOR, source="SINAPI")


@pytest.fixture
def cimento():
    return Input(id="in-cimento", code="00001379", name="Cimento Portland CP II", unit="KG",
                 price=Decimal("20"), kind=InputKind.MATERIAL, source="SINAPI")


@pytest.fixture
def betoneira():
    return Input(id="in-betoneira", code="88830", name="Betoneira 400 L", unit="CHP",
                 price=Decimal("4"), kind=InputKind.EQUIPMENT)


@pytest.fixture
def inputs(pedreiro, cimento, betoneira):
    return [pedreiro, cimento, betoneira]


@pytest.fixture
def resolve_input(inputs):
    return lookup_from(inputs)


@pytest.fixture
def alvenaria(pedreiro, cimento):
    """Labor 10 x 5 and material 20 x 2, social charges 80%, BDI 20%."""
    return Composition(
        id="comp-alvenaria",
        code="ALV-01",
        name="Alvenaria de vedação",
        unit="M2",
        items=(
            CompositionItem(item_id=pedreiro.id, name=pedreiro.name, unit="H",
                            price=pedreiro.price, quantity=5),
            CompositionItem(item_id=cimento.id, name=cimento.name, unit="KG",
                            price=cimento.price, quantity=2),
        ),
        social_charges_pct=80,
        bdi_pct=20,
    )


# =============================================================================
# Budgets
# =============================================================================

@pytest.fixture
def simple_budget():
    """One line 2 x 2500 with 5% discount, 15% tax and 25% BDI."""
    budget = Budget(
        id="budget-1",
        client_id="client-1",
        bdi_pct=25,
        items=(
            BudgetItem(id="item-1", name="Estrutura de concreto", quantity=2,
                       unit_price=2500, discount_pct=5, tax_rate_pct=15),
        ),
    )
    return budget_aggregator.recalculate(budget)


@pytest.fixture
def scheduled_budget():
    """Stage '1.0 Fundação' worth 10000 split 60/40 over two months."""
    periods = (
        SchedulePeriod(id="p1", name="Mês 1", date=datetime.date(2024, 1, 1)),
        SchedulePeriod(id="p2", name="Mês 2", date=datetime.date(2024, 2, 1)),
    )
    budget = Budget(
        id="budget-schedule",
        client_id="client-1",
        items=(
            BudgetItem(id="item-1", name="Sapatas", quantity=100, unit_price=100,
                       stage="1.0 Fundação"),
        ),
        schedule_periods=periods,
        schedule_allocations=(
            ScheduleAllocation(stage="1.0 Fundação", period_id="p1", percentage=60),
            ScheduleAllocation(stage="1.0 Fundação", period_id="p2", percentage=40),
        ),
    )
    return budget_aggregator.recalculate(budget)


@pytest.fixture
def measured_budget():
    """Contracted 100 at 50 with one saved measurement of 30."""
    budget = Budget(
        id="budget-measured",
        client_id="client-2",
        items=(BudgetItem(id="item-1", name="Contrapiso", quantity=100, unit_price=50),),
        measurements=(
            Measurement(
                id="m1",
                name="1ª Medição",
                date=datetime.date(2024, 3, 31),
                items=(MeasurementItem(item_id="item-1", quantity_executed=30),),
                status=MeasurementStatus.SAVED,
            ),
        ),
    )
    return budget_aggregator.recalculate(budget)


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(scope="function")
def test_db():
    """Create a test database with fresh tables for each test."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    engine.dispose()
