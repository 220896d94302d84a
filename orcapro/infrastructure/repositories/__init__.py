"""
Repository implementations for data access layer.
"""
from .base_repository import BaseRepository
from .budget_repository import BudgetRepository, BudgetTemplateRepository
from .composition_repository import CompositionRepository
from .input_repository import InputRepository

__all__ = [
    'BaseRepository',
    'BudgetRepository',
    'BudgetTemplateRepository',
    'CompositionRepository',
    'InputRepository',
]
