"""
Infrastructure Layer - Persistence of the budget engine aggregates.

This module provides:
- Document serialization (camelCase JSON documents)
- Repository pattern for data access
"""

from .repositories import (
    BaseRepository,
    BudgetRepository,
    BudgetTemplateRepository,
    CompositionRepository,
    InputRepository,
)

__all__ = [
    'BaseRepository',
    'BudgetRepository',
    'BudgetTemplateRepository',
    'CompositionRepository',
    'InputRepository',
]
