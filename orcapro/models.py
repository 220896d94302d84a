"""
Database models and SQLAlchemy setup for the OrcaPro budget engine.

Aggregates are stored whole as JSON documents (see
orcapro.infrastructure.serialization). A few columns are lifted out of the
document for lookups; the document is the source of truth.
"""
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from orcapro.config import get_config

DATABASE_URL = get_config().database_url


def make_engine(url: str):
    """Engine for a database URL; SQLite connections may cross threads."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class BudgetRecord(Base):
    """A budget with its schedule and measurements."""
    __tablename__ = "budgets"

    id = Column(String(36), primary_key=True)
    client_id = Column(String(100), index=True)
    status = Column(String(20), default="DRAFT", index=True)
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class BudgetTemplateRecord(Base):
    """Reusable set of budget lines."""
    __tablename__ = "budget_templates"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), index=True)
    category = Column(String(100), nullable=True)
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CompositionRecord(Base):
    """Composition (unit cost build-up)."""
    __tablename__ = "compositions"

    id = Column(String(36), primary_key=True)
    code = Column(String(50), index=True)
    name = Column(String(500), index=True)
    source = Column(String(20), default="OWN")
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class InputRecord(Base):
    """Priced input (material, labor, equipment, service)."""
    __tablename__ = "inputs"

    id = Column(String(36), primary_key=True)
    code = Column(String(50), index=True)
    name = Column(String(500), index=True)
    source = Column(String(20), default="OWN")
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def init_db(bind=None):
    """Create all tables on the given engine (module engine by default)."""
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """Database session generator; closes the session when exhausted."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
