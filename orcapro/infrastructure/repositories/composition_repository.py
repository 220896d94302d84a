"""
Composition Repository - Data access layer for compositions.

Stored derived costs are never trusted: every composition is recomputed
from its items when it is written and when it is read.
"""
from dataclasses import replace
from typing import List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from orcapro.domain.entities import Composition
from orcapro.domain.exceptions import CompositionNotFoundError
from orcapro.domain.services import cost_composition_engine
from orcapro.domain.services.lookups import InputLookup
from orcapro.infrastructure.serialization import (
    composition_from_document,
    composition_to_document,
)
from orcapro.models import CompositionRecord
from .base_repository import BaseRepository
from .input_repository import InputRepository

logger = logging.getLogger(__name__)


class CompositionRepository(BaseRepository[CompositionRecord, Composition]):
    """
    Repository for Composition entities.

    Args:
        session: SQLAlchemy database session
        resolve_input: Input lookup for cost rollups; defaults to an
            InputRepository on the same session
    """

    def __init__(self, session: Session, resolve_input: Optional[InputLookup] = None):
        super().__init__(session, CompositionRecord)
        self.resolve_input = resolve_input or InputRepository(session).resolve

    def to_document(self, entity: Composition) -> dict:
        return composition_to_document(entity)

    def from_document(self, document: dict) -> Composition:
        return self._recompute(composition_from_document(document))

    def index_columns(self, entity: Composition) -> dict:
        return {'code': entity.code, 'name': entity.name, 'source': entity.source.value}

    def _stored(self, composition_id: str) -> Optional[Composition]:
        # Existence check for nested items; no rollup, so no recursion
        record = self.get_record(composition_id)
        return composition_from_document(record.document) if record else None

    def _recompute(self, composition: Composition) -> Composition:
        return cost_composition_engine.recompute(composition, self.resolve_input, self._stored)

    def resolve(self, composition_id: str) -> Optional[Composition]:
        return self.find_by_id(composition_id)

    def create(self, composition: Composition) -> Composition:
        composition = self._recompute(composition)
        logger.info(f"Creating composition {composition.code} ({composition.id})")
        return self._insert(composition)

    def update(self, composition_id: str, **changes) -> Composition:
        """
        Merge field changes into a stored composition and recompute its cost.

        Raises:
            CompositionNotFoundError: If the composition doesn't exist
        """
        record = self.get_record(composition_id)
        if record is None:
            raise CompositionNotFoundError(composition_id)
        updated = self._recompute(replace(self.from_document(record.document), **changes))
        logger.info(f"Updating composition {composition_id}: {sorted(changes)}")
        return self._store(record, updated)

    def search(self, query: str, limit: int = 50) -> List[Composition]:
        """Compositions whose code or name contains query (case-insensitive)."""
        pattern = f"%{query.strip()}%"
        records = self.session.query(CompositionRecord).filter(
            or_(CompositionRecord.code.ilike(pattern), CompositionRecord.name.ilike(pattern))
        ).order_by(CompositionRecord.name).limit(limit).all()
        return [self.from_document(record.document) for record in records]
