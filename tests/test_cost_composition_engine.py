"""
Unit Tests for the Cost Composition Engine.

Tests:
- Cost rollup by input kind, social charges and BDI
- Dangling references degrade to zero with a warning
- Copy-on-write editing helpers
- Nested composition expansion with cycle and depth guards
"""
from decimal import Decimal

import pytest

from orcapro.domain.entities import (
    Composition,
    CompositionItem,
    CompositionItemType,
    Input,
    InputKind,
)
from orcapro.domain.exceptions import (
    CompositionCycleError,
    CompositionDepthError,
    ReferenceIntegrityWarning,
)
from orcapro.domain.services import cost_composition_engine as engine
from orcapro.domain.services.lookups import lookup_from, no_lookup


class TestComputeComposition:
    """Tests for compute_composition()."""

    def test_labor_and_material_rollup(self, alvenaria, resolve_input):
        cost = engine.compute_composition(alvenaria.items, 80, 20, resolve_input)

        assert cost.labor_cost == Decimal("50")
        assert cost.material_cost == Decimal("40")
        assert cost.equipment_cost == Decimal("0")
        assert cost.labor_with_charges == Decimal("90")
        assert cost.direct_cost == Decimal("130")
        assert cost.total_with_bdi == Decimal("156")
        assert not cost.has_warnings

    def test_equipment_and_service_kinds(self, betoneira):
        servico = Input(id="in-servico", name="Frete", price=15, kind=InputKind.SERVICE)
        items = (
            CompositionItem(item_id=betoneira.id, price=4, quantity=Decimal("0.5")),
            CompositionItem(item_id=servico.id, price=15, quantity=1),
        )
        cost = engine.compute_composition(items, 0, 0, lookup_from([betoneira, servico]))

        assert cost.equipment_cost == Decimal("2")
        assert cost.material_cost == Decimal("15")
        assert cost.direct_cost == Decimal("17")

    def test_empty_items(self, resolve_input):
        cost = engine.compute_composition((), 80, 20, resolve_input)
        assert cost.direct_cost == 0
        assert cost.total_with_bdi == 0

    def test_dangling_input_costs_zero_with_warning(self, alvenaria, resolve_input):
        items = alvenaria.items + (
            CompositionItem(item_id="in-removed", price=1000, quantity=1),
        )
        cost = engine.compute_composition(items, 80, 20, resolve_input, owner_id=alvenaria.id)

        assert cost.direct_cost == Decimal("130")
        assert cost.warnings == (ReferenceIntegrityWarning("in-removed", "INPUT", alvenaria.id),)

    def test_does_not_mutate_items(self, alvenaria, resolve_input):
        items = list(alvenaria.items)
        snapshot = list(items)
        engine.compute_composition(items, 80, 20, resolve_input)
        assert items == snapshot

    def test_deterministic(self, alvenaria, resolve_input):
        first = engine.compute_composition(alvenaria.items, 80, 20, resolve_input)
        second = engine.compute_composition(alvenaria.items, 80, 20, resolve_input)
        assert first == second

    def test_nested_composition_counts_as_material(self, alvenaria, resolve_input):
        item = CompositionItem(item_id=alvenaria.id, item_type=CompositionItemType.COMPOSITION,
                               price=156, quantity=2)
        cost = engine.compute_composition((item,), 0, 0, resolve_input, lookup_from([alvenaria]))
        assert cost.material_cost == Decimal("312")

    def test_missing_nested_composition_warns(self, resolve_input):
        item = CompositionItem(item_id="comp-gone", item_type="COMPOSITION", price=10, quantity=1)
        cost = engine.compute_composition((item,), 0, 0, resolve_input, no_lookup)
        assert cost.material_cost == 0
        assert cost.warnings[0].reference_type == "COMPOSITION"


class TestRecompute:
    """Tests for recompute() and idempotence."""

    def test_recompute_sets_cost(self, alvenaria, resolve_input):
        result = engine.recompute(alvenaria, resolve_input)
        assert result.total_with_bdi == Decimal("156")
        assert alvenaria.total_with_bdi == 0

    def test_recompute_is_idempotent(self, alvenaria, resolve_input):
        once = engine.recompute(alvenaria, resolve_input)
        twice = engine.recompute(once, resolve_input)
        assert once.cost == twice.cost

    def test_new_composition_uses_config_defaults(self, pedreiro, resolve_input):
        item = CompositionItem(item_id=pedreiro.id, price=pedreiro.price, quantity=1)
        result = engine.new_composition(resolve_input, code="X", name="Hora", items=[item])
        assert result.social_charges_pct == 0
        assert result.total_with_bdi == Decimal("10")


class TestEditing:
    """Tests for copy-on-write editing helpers."""

    def test_attach_input_snapshots_price(self, alvenaria, betoneira, resolve_input):
        base = engine.recompute(alvenaria, resolve_input)
        result = engine.attach_input(base, betoneira, 2, resolve_input)

        item = result.find_item(betoneira.id)
        assert item.price == Decimal("4")
        assert result.equipment_cost == Decimal("8")
        assert len(base.items) == 2

    def test_attach_existing_input_is_noop(self, alvenaria, cimento, resolve_input):
        result = engine.attach_input(alvenaria, cimento, 10, resolve_input)
        assert result is alvenaria

    def test_update_item_quantity(self, alvenaria, cimento, resolve_input):
        result = engine.update_item_quantity(alvenaria, cimento.id, 4, resolve_input)
        assert result.material_cost == Decimal("80")
        assert alvenaria.find_item(cimento.id).quantity == 2

    def test_remove_item(self, alvenaria, pedreiro, resolve_input):
        result = engine.remove_item(alvenaria, pedreiro.id, resolve_input)
        assert result.labor_cost == 0
        assert result.direct_cost == Decimal("40")

    def test_set_rates(self, alvenaria, resolve_input):
        result = engine.set_rates(alvenaria, 100, 0, resolve_input)
        assert result.labor_with_charges == Decimal("100")
        assert result.total_with_bdi == Decimal("140")

    def test_refresh_prices(self, alvenaria, inputs, cimento):
        dearer = Input(id=cimento.id, name=cimento.name, price=30, kind=InputKind.MATERIAL)
        catalog = lookup_from([i for i in inputs if i.id != cimento.id] + [dearer])

        result = engine.refresh_prices(alvenaria, catalog)
        assert result.find_item(cimento.id).price == Decimal("30")
        assert result.material_cost == Decimal("60")

    def test_attach_composition_snapshots_total(self, alvenaria, resolve_input):
        nested = engine.recompute(alvenaria, resolve_input)
        parent = Composition(id="comp-parede", name="Parede completa")
        result = engine.attach_composition(parent, nested, 3, resolve_input, lookup_from([nested]))

        assert result.find_item(nested.id).price == Decimal("156")
        assert result.material_cost == Decimal("468")

    def test_attach_composition_rejects_self(self, alvenaria, resolve_input):
        with pytest.raises(CompositionCycleError):
            engine.attach_composition(alvenaria, alvenaria, 1, resolve_input, lookup_from([alvenaria]))

    def test_attach_composition_rejects_cycle(self, resolve_input):
        a = Composition(id="A", name="A")
        b = Composition(id="B", name="B", items=(
            CompositionItem(item_id="A", item_type="COMPOSITION", quantity=1),
        ))
        with pytest.raises(CompositionCycleError) as exc:
            engine.attach_composition(a, b, 1, resolve_input, lookup_from([a, b]))
        assert exc.value.path[0] == "A"
        assert exc.value.path[-1] == "A"


class TestExplodeComposition:
    """Tests for explode_composition()."""

    def test_flat_explosion(self, alvenaria, resolve_input, pedreiro, cimento):
        explosion = engine.explode_composition(alvenaria, 10, resolve_input)

        by_id = {line.input.id: line for line in explosion.lines}
        assert by_id[pedreiro.id].quantity == Decimal("50")
        assert by_id[cimento.id].quantity == Decimal("20")
        assert by_id[cimento.id].value == Decimal("400")
        assert explosion.warnings == ()

    def test_nested_quantities_multiply(self, alvenaria, resolve_input, cimento):
        parent = Composition(id="comp-parede", items=(
            CompositionItem(item_id=alvenaria.id, item_type="COMPOSITION", quantity=3),
        ))
        explosion = engine.explode_composition(
            parent, 2, resolve_input, lookup_from([alvenaria, parent])
        )
        by_id = {line.input.id: line for line in explosion.lines}
        assert by_id[cimento.id].quantity == Decimal("12")

    def test_cycle_raises(self, resolve_input):
        a = Composition(id="A", items=(CompositionItem(item_id="B", item_type="COMPOSITION", quantity=1),))
        b = Composition(id="B", items=(CompositionItem(item_id="A", item_type="COMPOSITION", quantity=1),))
        with pytest.raises(CompositionCycleError):
            engine.explode_composition(a, 1, resolve_input, lookup_from([a, b]))

    def test_depth_limit(self, resolve_input):
        chain = [
            Composition(id=f"C{i}", items=(
                CompositionItem(item_id=f"C{i + 1}", item_type="COMPOSITION", quantity=1),
            ))
            for i in range(4)
        ] + [Composition(id="C4")]
        with pytest.raises(CompositionDepthError):
            engine.explode_composition(chain[0], 1, resolve_input, lookup_from(chain), max_depth=2)

    def test_missing_references_are_skipped(self, alvenaria, resolve_input):
        broken = Composition(id="X", items=alvenaria.items + (
            CompositionItem(item_id="in-removed", quantity=1),
            CompositionItem(item_id="comp-gone", item_type="COMPOSITION", quantity=1),
        ))
        explosion = engine.explode_composition(broken, 1, resolve_input, no_lookup)
        assert len(explosion.lines) == 2
        assert {w.reference_id for w in explosion.warnings} == {"in-removed", "comp-gone"}
