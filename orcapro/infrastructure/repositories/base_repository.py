"""
Base Repository - Abstract repository pattern implementation.

Records hold a JSON document; repositories translate between records and
frozen domain entities so callers never handle SQLAlchemy objects.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from orcapro.models import Base

T = TypeVar('T', bound=Base)
E = TypeVar('E')


class BaseRepository(ABC, Generic[T, E]):
    """
    Abstract base repository providing common data access operations.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages
        E: The domain entity stored in the record's document
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    @abstractmethod
    def to_document(self, entity: E) -> Dict[str, Any]:
        """Serialize an entity into the stored document."""

    @abstractmethod
    def from_document(self, document: Dict[str, Any]) -> E:
        """Rebuild an entity from its stored document."""

    def index_columns(self, entity: E) -> Dict[str, Any]:
        """Record columns lifted out of the document for querying."""
        return {}

    def get_record(self, entity_id: str) -> Optional[T]:
        """
        Retrieve a record by its primary key.

        Args:
            entity_id: Primary key value

        Returns:
            The record if found, None otherwise
        """
        return self.session.query(self.model_class).filter(
            self.model_class.id == entity_id
        ).first()

    def find_by_id(self, entity_id: str) -> Optional[E]:
        record = self.get_record(entity_id)
        return self.from_document(record.document) if record else None

    def find_all(self, limit: Optional[int] = None, offset: int = 0) -> List[E]:
        """
        Retrieve all entities, most recently created first.

        Args:
            limit: Maximum number of entities to return
            offset: Number of entities to skip
        """
        query = self.session.query(self.model_class).order_by(
            self.model_class.created_at.desc()
        ).offset(offset)
        if limit:
            query = query.limit(limit)
        return [self.from_document(record.document) for record in query.all()]

    def count(self) -> int:
        return self.session.query(self.model_class).count()

    def exists(self, entity_id: str) -> bool:
        return self.get_record(entity_id) is not None

    def _insert(self, entity: E) -> E:
        record = self.model_class(
            id=entity.id,
            document=self.to_document(entity),
            **self.index_columns(entity),
        )
        self.session.add(record)
        self.session.flush()
        return entity

    def _store(self, record: T, entity: E) -> E:
        record.document = self.to_document(entity)
        for column, value in self.index_columns(entity).items():
            setattr(record, column, value)
        record.updated_at = datetime.utcnow()
        self.session.flush()
        return entity

    def delete(self, entity_id: str) -> bool:
        """
        Delete an entity by its primary key.

        Returns:
            True if entity was found and deleted, False otherwise
        """
        record = self.get_record(entity_id)
        if record:
            self.session.delete(record)
            self.session.flush()
            return True
        return False

    def commit(self) -> None:
        """Commit the current transaction."""
        self.session.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.session.rollback()
