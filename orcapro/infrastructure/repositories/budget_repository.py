"""
Budget Repository - Data access layer for Budget and BudgetTemplate entities.

Budgets are recalculated before every write so the stored totals always
match the items, and again on read since stored totals are not trusted.
"""
from dataclasses import replace
from datetime import datetime, timezone
from typing import List
import logging

from sqlalchemy.orm import Session

from orcapro.domain.entities import Budget, BudgetTemplate
from orcapro.domain.exceptions import BudgetNotFoundError, TemplateNotFoundError
from orcapro.domain.services import budget_aggregator
from orcapro.infrastructure.serialization import (
    budget_from_document,
    budget_to_document,
    template_from_document,
    template_to_document,
)
from orcapro.models import BudgetRecord, BudgetTemplateRecord
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BudgetTemplateRepository(BaseRepository[BudgetTemplateRecord, BudgetTemplate]):
    """Repository for budget templates."""

    def __init__(self, session: Session):
        super().__init__(session, BudgetTemplateRecord)

    def to_document(self, entity: BudgetTemplate) -> dict:
        return template_to_document(entity)

    def from_document(self, document: dict) -> BudgetTemplate:
        return template_from_document(document)

    def index_columns(self, entity: BudgetTemplate) -> dict:
        return {'name': entity.name, 'category': entity.category}

    def create(self, template: BudgetTemplate) -> BudgetTemplate:
        logger.info(f"Creating budget template {template.name} ({template.id})")
        return self._insert(template)


class BudgetRepository(BaseRepository[BudgetRecord, Budget]):
    """
    Repository for Budget entities.

    Updates merge the given fields into the stored budget and recalculate
    the totals before saving.
    """

    def __init__(self, session: Session):
        super().__init__(session, BudgetRecord)
        self.templates = BudgetTemplateRepository(session)

    def to_document(self, entity: Budget) -> dict:
        return budget_to_document(entity)

    def from_document(self, document: dict) -> Budget:
        return budget_aggregator.recalculate(budget_from_document(document))

    def index_columns(self, entity: Budget) -> dict:
        return {'client_id': entity.client_id, 'status': entity.status.value}

    def create(self, budget: Budget) -> Budget:
        """
        Persist a new budget.

        Returns:
            The stored budget with fresh totals
        """
        budget = budget_aggregator.recalculate(budget)
        logger.info(f"Creating budget {budget.id} for client {budget.client_id}")
        return self._insert(budget)

    def get(self, budget_id: str) -> Budget:
        """
        Like find_by_id, but missing budgets are an error.

        Raises:
            BudgetNotFoundError: If the budget doesn't exist
        """
        budget = self.find_by_id(budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)
        return budget

    def update(self, budget_id: str, **changes) -> Budget:
        """
        Merge field changes into a stored budget and recalculate.

        Args:
            budget_id: Budget identifier
            **changes: Budget fields to replace (items, bdi_pct, status, ...)

        Returns:
            Updated budget

        Raises:
            BudgetNotFoundError: If the budget doesn't exist
        """
        record = self.get_record(budget_id)
        if record is None:
            raise BudgetNotFoundError(budget_id)

        current = self.from_document(record.document)
        updated = budget_aggregator.recalculate(
            replace(current, updated_at=datetime.now(timezone.utc), **changes)
        )
        logger.info(f"Updating budget {budget_id}: {sorted(changes)}")
        return self._store(record, updated)

    def save(self, budget: Budget) -> Budget:
        """Store a whole budget aggregate, inserting it when new."""
        record = self.get_record(budget.id)
        if record is None:
            return self.create(budget)
        budget = budget_aggregator.recalculate(budget)
        logger.info(f"Saving budget {budget.id}")
        return self._store(record, budget)

    def delete(self, budget_id: str) -> bool:
        deleted = super().delete(budget_id)
        if deleted:
            logger.info(f"Deleted budget {budget_id}")
        return deleted

    def find_by_client_id(self, client_id: str) -> List[Budget]:
        """All budgets of a client, most recent first."""
        records = self.session.query(BudgetRecord).filter(
            BudgetRecord.client_id == client_id
        ).order_by(BudgetRecord.created_at.desc()).all()
        return [self.from_document(record.document) for record in records]

    # =========================================================================
    # Templates
    # =========================================================================

    def create_template(self, template: BudgetTemplate) -> BudgetTemplate:
        return self.templates.create(template)

    def find_all_templates(self) -> List[BudgetTemplate]:
        return self.templates.find_all()

    def delete_template(self, template_id: str) -> bool:
        deleted = self.templates.delete(template_id)
        if deleted:
            logger.info(f"Deleted budget template {template_id}")
        return deleted

    def create_from_template(self, template_id: str, client_id: str, **options) -> Budget:
        """
        Instantiate a stored template into a new stored budget.

        Raises:
            TemplateNotFoundError: If the template doesn't exist
        """
        template = self.templates.find_by_id(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return self.create(budget_aggregator.budget_from_template(template, client_id, **options))
