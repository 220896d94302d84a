"""
Unit Tests for document serialization.

Tests the persisted shape: camelCase keys, arrays, ISO-8601 dates and
decimals as strings.
"""
import datetime
import json
from decimal import Decimal

from orcapro.domain.entities import MeasurementStatus, SourceKind
from orcapro.domain.services import cost_composition_engine
from orcapro.infrastructure.serialization import (
    budget_from_document,
    budget_to_document,
    composition_from_document,
    composition_to_document,
    input_from_document,
    input_to_document,
)


class TestBudgetDocument:
    """Tests for budget documents."""

    def test_shape(self, scheduled_budget):
        doc = budget_to_document(scheduled_budget)

        assert doc['clientId'] == 'client-1'
        assert isinstance(doc['items'], list)
        assert doc['items'][0]['unitPrice'] == '100'
        assert doc['schedulePeriods'][0] == {'id': 'p1', 'name': 'Mês 1', 'date': '2024-01-01'}
        assert doc['scheduleAllocations'][0]['periodId'] == 'p1'
        assert doc['baselineAllocations'] == []
        assert doc['measurements'] == []
        assert Decimal(doc['total']) == Decimal('10000')
        # Must be plain JSON
        json.dumps(doc)

    def test_measurements_read_back_as_saved(self, measured_budget):
        doc = budget_to_document(measured_budget)
        assert doc['measurements'][0]['date'] == '2024-03-31'

        budget = budget_from_document(doc)
        measurement = budget.measurements[0]
        assert measurement.status is MeasurementStatus.SAVED
        assert measurement.quantity_for('item-1') == Decimal('30')
        assert measurement.date == datetime.date(2024, 3, 31)

    def test_stored_totals_are_ignored(self, simple_budget):
        doc = budget_to_document(simple_budget)
        doc['total'] = '1'
        budget = budget_from_document(doc)
        assert budget.total == 0
        assert budget.items == simple_budget.items

    def test_timestamps_survive(self, simple_budget):
        budget = budget_from_document(budget_to_document(simple_budget))
        assert budget.created_at == simple_budget.created_at

    def test_datetime_strings_with_time_part(self, simple_budget):
        doc = budget_to_document(simple_budget)
        doc['validUntil'] = '2024-06-30T00:00:00.000Z'
        assert budget_from_document(doc).valid_until == datetime.date(2024, 6, 30)


class TestCatalogDocuments:
    """Tests for input and composition documents."""

    def test_input_document(self, pedreiro):
        doc = input_to_document(pedreiro)
        assert doc['type'] == 'LABOR'
        assert doc['source'] == 'SINAPI'
        assert input_from_document(doc) == pedreiro

    def test_legacy_source_alias(self):
        entity = input_from_document({'id': 'x', 'name': 'Brita', 'price': '90', 'source': 'PROPRIA'})
        assert entity.source is SourceKind.OWN

    def test_composition_document(self, alvenaria, resolve_input):
        computed = cost_composition_engine.recompute(alvenaria, resolve_input)
        doc = composition_to_document(computed)

        assert doc['socialCharges'] == '80'
        assert Decimal(doc['totalWithBDI']) == Decimal('156')
        assert doc['items'][0]['itemId'] == 'in-pedreiro'

        restored = composition_from_document(doc)
        assert restored.items == alvenaria.items
        assert restored.total_with_bdi == 0
