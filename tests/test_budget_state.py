"""
Unit Tests for BudgetState.

Tests:
- Every action returns a new state and leaves the previous one intact
- Budget actions run through the aggregator
- Catalog edits keep composition snapshots until refreshed
"""
from decimal import Decimal

import pytest

from orcapro.domain.entities import Budget, BudgetItem, BudgetTemplate, Composition
from orcapro.domain.exceptions import (
    BudgetNotFoundError,
    CompositionCycleError,
    CompositionNotFoundError,
    InputNotFoundError,
    TemplateNotFoundError,
)
from orcapro.domain.services import budget_aggregator, cost_composition_engine, schedule_allocator
from orcapro.modules.budget_state import BudgetState


@pytest.fixture
def state(inputs, alvenaria):
    return BudgetState(inputs=tuple(inputs)).add_composition(alvenaria)


# =============================================================================
# Budgets
# =============================================================================

class TestBudgetActions:
    """Tests for budget actions."""

    def test_add_budget_recalculates(self, state):
        stale = Budget(id="b1", items=(BudgetItem(name="Linha", quantity=2, unit_price=10),))
        assert stale.total == 0

        new_state = state.add_budget(stale)
        assert new_state.budget("b1").total == Decimal("20")

    def test_previous_state_is_untouched(self, state, simple_budget):
        new_state = state.add_budget(simple_budget)
        assert state.budgets == ()
        assert new_state is not state
        assert new_state.version == state.version + 1

    def test_apply_runs_engine_function(self, state, simple_budget):
        state = state.add_budget(simple_budget)
        updated = state.apply(simple_budget.id, budget_aggregator.set_bdi, 0)
        assert updated.budget(simple_budget.id).total == Decimal("5500")
        assert state.budget(simple_budget.id).total == Decimal("6750")

    def test_apply_schedule_allocation(self, state, scheduled_budget):
        state = state.add_budget(scheduled_budget)
        state = state.apply(
            scheduled_budget.id, schedule_allocator.set_allocation, "1.0 Fundação", "p1", 100
        )
        budget = state.budget(scheduled_budget.id)
        assert schedule_allocator.period_totals(budget)[0] == Decimal("10000")

    def test_update_budget_merges_fields(self, state, simple_budget):
        state = state.add_budget(simple_budget).update_budget(simple_budget.id, bdi_pct=0, notes="Revisão")
        budget = state.budget(simple_budget.id)
        assert budget.notes == "Revisão"
        assert budget.total == Decimal("5500")

    def test_unknown_budget_raises(self, state):
        with pytest.raises(BudgetNotFoundError):
            state.budget("nope")
        with pytest.raises(BudgetNotFoundError):
            state.select_budget("nope")

    def test_select_and_remove(self, state, simple_budget, measured_budget):
        state = state.add_budget(simple_budget).add_budget(measured_budget)
        state = state.select_budget(simple_budget.id)
        assert state.selected_budget.id == simple_budget.id

        state = state.remove_budget(simple_budget.id)
        assert state.selected_budget is None
        assert [b.id for b in state.budgets] == [measured_budget.id]

    def test_budgets_for_client(self, state, simple_budget, scheduled_budget, measured_budget):
        for budget in (simple_budget, scheduled_budget, measured_budget):
            state = state.add_budget(budget)
        assert {b.id for b in state.budgets_for_client("client-1")} == {
            simple_budget.id, scheduled_budget.id,
        }


class TestTemplates:
    """Tests for template actions."""

    def test_budget_from_template(self, state):
        template = BudgetTemplate(
            id="tpl-1",
            name="Muro",
            bdi_pct=10,
            items=(BudgetItem(name="Blocos", quantity=100, unit_price=5),),
        )
        state = state.add_template(template).budget_from_template("tpl-1", "client-9")

        budget = state.budgets_for_client("client-9")[0]
        assert budget.total == Decimal("550")

    def test_unknown_template(self, state):
        with pytest.raises(TemplateNotFoundError):
            state.budget_from_template("nope", "client-9")

    def test_remove_template(self, state):
        template = BudgetTemplate(id="tpl-1", name="Muro")
        assert state.add_template(template).remove_template("tpl-1").templates == ()


# =============================================================================
# Catalog
# =============================================================================

class TestCatalogActions:
    """Tests for input and composition actions."""

    def test_composition_is_recomputed_on_add(self, state, alvenaria):
        assert state.resolve_composition(alvenaria.id).total_with_bdi == Decimal("156")

    def test_input_update_keeps_snapshot_until_refresh(self, state, cimento, alvenaria):
        state = state.update_input(cimento.id, price=Decimal("30"))
        assert state.resolve_input(cimento.id).price == Decimal("30")
        assert state.resolve_composition(alvenaria.id).total_with_bdi == Decimal("156")

        refreshed = state.refresh_composition_prices()
        assert refreshed.resolve_composition(alvenaria.id).total_with_bdi == Decimal("180")

    def test_update_unknown_input(self, state):
        with pytest.raises(InputNotFoundError):
            state.update_input("nope", price=1)

    def test_remove_input_leaves_dangling_warning(self, state, cimento, alvenaria):
        state = state.remove_input(cimento.id)
        composition = state.resolve_composition(alvenaria.id)
        assert composition.material_cost == 0
        assert [w.reference_id for w in composition.cost.warnings] == [cimento.id]

    def test_update_composition_injects_lookups(self, state, betoneira, alvenaria):
        state = state.update_composition(alvenaria.id, cost_composition_engine.attach_input, betoneira, 1)
        composition = state.resolve_composition(alvenaria.id)
        assert composition.equipment_cost == Decimal("4")
        assert composition.total_with_bdi == Decimal("160.8")

    def test_update_composition_with_rates(self, state, alvenaria):
        state = state.update_composition(alvenaria.id, cost_composition_engine.set_rates, 80, 0)
        assert state.resolve_composition(alvenaria.id).total_with_bdi == Decimal("130")

        state = state.update_composition(alvenaria.id, cost_composition_engine.set_rates, 0, 0)
        assert state.resolve_composition(alvenaria.id).total_with_bdi == Decimal("90")

    def test_update_unknown_composition(self, state):
        with pytest.raises(CompositionNotFoundError):
            state.update_composition("nope", cost_composition_engine.set_rates, 0, 0)

    def test_nested_compositions_and_cycles(self, state, alvenaria):
        state = state.add_composition(Composition(id="comp-parede", name="Parede"))
        state = state.update_composition(
            "comp-parede",
            cost_composition_engine.attach_composition,
            state.resolve_composition(alvenaria.id),
            2,
        )
        parede = state.resolve_composition("comp-parede")
        assert parede.material_cost == Decimal("312")

        with pytest.raises(CompositionCycleError):
            state.update_composition(
                alvenaria.id, cost_composition_engine.attach_composition, parede, 1
            )

    def test_remove_composition(self, state, alvenaria):
        state = state.remove_composition(alvenaria.id)
        assert state.resolve_composition(alvenaria.id) is None
