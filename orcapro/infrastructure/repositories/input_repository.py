"""
Input Repository - Data access layer for priced inputs.
"""
from dataclasses import replace
from typing import List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from orcapro.domain.entities import Input
from orcapro.domain.exceptions import InputNotFoundError
from orcapro.infrastructure.serialization import input_from_document, input_to_document
from orcapro.models import InputRecord
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class InputRepository(BaseRepository[InputRecord, Input]):
    """
    Repository for Input entities.

    resolve() satisfies the input lookup expected by the engines.
    """

    def __init__(self, session: Session):
        super().__init__(session, InputRecord)

    def to_document(self, entity: Input) -> dict:
        return input_to_document(entity)

    def from_document(self, document: dict) -> Input:
        return input_from_document(document)

    def index_columns(self, entity: Input) -> dict:
        return {'code': entity.code, 'name': entity.name, 'source': entity.source.value}

    def resolve(self, input_id: str) -> Optional[Input]:
        return self.find_by_id(input_id)

    def create(self, entity: Input) -> Input:
        logger.info(f"Creating input {entity.code} ({entity.id})")
        return self._insert(entity)

    def update(self, input_id: str, **changes) -> Input:
        """
        Merge field changes into a stored input.

        Compositions keep their price snapshots; refresh them explicitly
        with cost_composition_engine.refresh_prices.

        Raises:
            InputNotFoundError: If the input doesn't exist
        """
        record = self.get_record(input_id)
        if record is None:
            raise InputNotFoundError(input_id)
        updated = replace(self.from_document(record.document), **changes)
        logger.info(f"Updating input {input_id}: {sorted(changes)}")
        return self._store(record, updated)

    def search(self, query: str, limit: int = 50) -> List[Input]:
        """Inputs whose code or name contains query (case-insensitive)."""
        pattern = f"%{query.strip()}%"
        records = self.session.query(InputRecord).filter(
            or_(InputRecord.code.ilike(pattern), InputRecord.name.ilike(pattern))
        ).order_by(InputRecord.name).limit(limit).all()
        return [self.from_document(record.document) for record in records]
