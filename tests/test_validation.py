"""
Unit Tests for boundary validation.

Tests:
- Budget forms (camelCase and snake_case keys)
- Rejection of malformed numeric input
- Composition forms priced from the catalog
"""
import datetime
from decimal import Decimal

import pytest

from orcapro.domain.entities import BudgetStatus, InputKind, MeasurementStatus, SourceKind
from orcapro.domain.exceptions import ValidationError
from orcapro.domain.validation import (
    ensure_percentage,
    validate_budget,
    validate_budget_item,
    validate_composition,
    validate_input,
)


@pytest.fixture
def budget_form():
    return {
        'clientId': 'client-1',
        'bdiPct': 25,
        'validUntil': '2024-12-31',
        'items': [
            {'name': 'Estrutura', 'quantity': 2, 'unitPrice': 2500,
             'discountPct': 5, 'taxRatePct': 15, 'stage': '1.0 Estrutura'},
        ],
    }


class TestValidateBudget:
    """Tests for validate_budget()."""

    def test_valid_form_builds_budget_with_totals(self, budget_form):
        budget = validate_budget(budget_form)

        assert budget.client_id == 'client-1'
        assert budget.status is BudgetStatus.DRAFT
        assert budget.valid_until == datetime.date(2024, 12, 31)
        assert budget.total == Decimal("6750")
        assert budget.items[0].stage == '1.0 Estrutura'

    def test_snake_case_keys(self):
        budget = validate_budget({
            'client_id': 'c',
            'items': [{'name': 'Linha', 'quantity': '1.5', 'unit_price': '10'}],
        })
        assert budget.subtotal == Decimal("15.0")

    def test_float_values_keep_their_text(self):
        budget = validate_budget({
            'clientId': 'c',
            'items': [{'name': 'Linha', 'quantity': 0.1, 'unitPrice': 3}],
        })
        assert budget.items[0].quantity == Decimal("0.1")

    def test_requires_at_least_one_item(self, budget_form):
        budget_form['items'] = []
        with pytest.raises(ValidationError) as exc:
            validate_budget(budget_form)
        assert exc.value.field == 'items'
        assert exc.value.code == 'VALIDATION_ERROR'

    @pytest.mark.parametrize("field, value", [
        ('quantity', 0),
        ('quantity', -1),
        ('unitPrice', -0.01),
        ('discountPct', 101),
        ('taxRatePct', -5),
        ('name', 'ab'),
    ])
    def test_rejects_bad_line(self, budget_form, field, value):
        budget_form['items'][0][field] = value
        with pytest.raises(ValidationError):
            validate_budget(budget_form)

    def test_rejects_bdi_above_hundred(self, budget_form):
        budget_form['bdiPct'] = 120
        with pytest.raises(ValidationError):
            validate_budget(budget_form)

    def test_measurements_come_in_saved(self, budget_form):
        budget_form['measurements'] = [{
            'id': 'm1', 'name': '1ª Medição', 'date': '2024-03-31',
            'items': [{'itemId': 'x', 'quantityExecuted': 3}],
        }]
        budget = validate_budget(budget_form)
        assert budget.measurements[0].status is MeasurementStatus.SAVED
        assert budget.measurements[0].quantity_for('x') == Decimal("3")


class TestValidateItemsAndInputs:
    """Tests for validate_budget_item() and validate_input()."""

    def test_budget_item(self):
        item = validate_budget_item({'id': 'i-1', 'name': 'Pintura', 'quantity': 3, 'unitPrice': 12})
        assert item.id == 'i-1'
        assert item.line_total == Decimal("36")

    def test_budget_item_gets_generated_id(self):
        item = validate_budget_item({'name': 'Pintura', 'quantity': 3, 'unitPrice': 12})
        assert item.id

    def test_input_with_legacy_source(self):
        entity = validate_input({'code': '001', 'name': 'Areia', 'price': '85.50',
                                 'kind': 'MATERIAL', 'source': 'PROPRIA'})
        assert entity.source is SourceKind.OWN
        assert entity.kind is InputKind.MATERIAL
        assert entity.price == Decimal("85.50")

    def test_input_negative_price(self):
        with pytest.raises(ValidationError):
            validate_input({'code': '001', 'name': 'Areia', 'price': -1})


class TestValidateComposition:
    """Tests for validate_composition()."""

    def test_prices_come_from_catalog(self, resolve_input, pedreiro, cimento):
        composition = validate_composition({
            'code': 'ALV-01',
            'name': 'Alvenaria',
            'unit': 'M2',
            'socialChargesPct': 80,
            'bdiPct': 20,
            'items': [
                {'itemId': pedreiro.id, 'quantity': 5},
                {'itemId': cimento.id, 'quantity': 2},
            ],
        }, resolve_input)

        assert composition.items[0].price == Decimal("10")
        assert composition.items[0].name == pedreiro.name
        assert composition.total_with_bdi == Decimal("156")

    def test_social_charges_may_exceed_hundred(self, resolve_input, pedreiro):
        composition = validate_composition({
            'name': 'Hora',
            'socialChargesPct': 120,
            'items': [{'itemId': pedreiro.id, 'quantity': 1}],
        }, resolve_input)
        assert composition.cost.labor_with_charges == Decimal("22")
        assert composition.direct_cost == Decimal("22")

    def test_unknown_input_is_priced_at_zero(self, resolve_input):
        composition = validate_composition({
            'name': 'Vazia',
            'items': [{'itemId': 'in-missing', 'quantity': 1}],
        }, resolve_input)
        assert composition.direct_cost == 0
        assert composition.cost.has_warnings

    def test_zero_coefficient_rejected(self, resolve_input, pedreiro):
        with pytest.raises(ValidationError):
            validate_composition({'name': 'X', 'items': [{'itemId': pedreiro.id, 'quantity': 0}]},
                                 resolve_input)


class TestEnsurePercentage:
    """Tests for ensure_percentage()."""

    def test_accepts_range(self):
        assert ensure_percentage("37.5") == Decimal("37.5")
        assert ensure_percentage(0) == 0
        assert ensure_percentage(100) == 100

    @pytest.mark.parametrize("value", [-1, 100.01, "abc"])
    def test_rejects(self, value):
        with pytest.raises(ValidationError):
            ensure_percentage(value, "allocation")
