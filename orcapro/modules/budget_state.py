"""
Budget State - Reconstructible application state over the engine.

Holds the budgets, compositions, inputs and templates an application is
working with. Every action runs the pure engine functions and returns a
new BudgetState; the previous state object is never modified, so callers
can detect changes by identity.

    state = BudgetState.from_repositories(budgets, compositions, inputs)
    state = state.add_budget(budget)
    state = state.apply(budget.id, schedule_allocator.set_allocation, '1.0 Fundação', period_id, 60)
"""
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Tuple
import inspect
import logging

from orcapro.domain.entities import Budget, BudgetTemplate, Composition, Input
from orcapro.domain.exceptions import (
    BudgetNotFoundError,
    CompositionNotFoundError,
    InputNotFoundError,
    TemplateNotFoundError,
)
from orcapro.domain.services import budget_aggregator, cost_composition_engine
from orcapro.domain.services.lookups import lookup_from

logger = logging.getLogger(__name__)


def _replace_by_id(entities: Tuple, entity) -> Tuple:
    return tuple(entity if e.id == entity.id else e for e in entities)


def _without_id(entities: Tuple, entity_id: str) -> Tuple:
    return tuple(e for e in entities if e.id != entity_id)


@dataclass(frozen=True)
class BudgetState:
    budgets: Tuple[Budget, ...] = ()
    compositions: Tuple[Composition, ...] = ()
    inputs: Tuple[Input, ...] = ()
    templates: Tuple[BudgetTemplate, ...] = ()
    selected_budget_id: Optional[str] = None
    version: int = field(default=0, compare=False)

    @classmethod
    def from_repositories(cls, budgets=None, compositions=None, inputs=None) -> "BudgetState":
        """Load a state from repository instances (any may be omitted)."""
        return cls(
            budgets=tuple(budgets.find_all()) if budgets else (),
            templates=tuple(budgets.find_all_templates()) if budgets else (),
            compositions=tuple(compositions.find_all()) if compositions else (),
            inputs=tuple(inputs.find_all()) if inputs else (),
        )

    def _next(self, **changes) -> "BudgetState":
        return replace(self, version=self.version + 1, **changes)

    # =========================================================================
    # Lookups
    # =========================================================================

    @property
    def resolve_input(self) -> Callable[[str], Optional[Input]]:
        return lookup_from(self.inputs)

    @property
    def resolve_composition(self) -> Callable[[str], Optional[Composition]]:
        return lookup_from(self.compositions)

    def budget(self, budget_id: str) -> Budget:
        """
        Raises:
            BudgetNotFoundError: If the budget is not in the state
        """
        for budget in self.budgets:
            if budget.id == budget_id:
                return budget
        raise BudgetNotFoundError(budget_id)

    @property
    def selected_budget(self) -> Optional[Budget]:
        if self.selected_budget_id is None:
            return None
        return self.budget(self.selected_budget_id)

    def budgets_for_client(self, client_id: str) -> Tuple[Budget, ...]:
        return tuple(b for b in self.budgets if b.client_id == client_id)

    # =========================================================================
    # Budget actions
    # =========================================================================

    def add_budget(self, budget: Budget) -> "BudgetState":
        return self._next(budgets=self.budgets + (budget_aggregator.recalculate(budget),))

    def update_budget(self, budget_id: str, **changes) -> "BudgetState":
        """Merge field changes into a budget and recalculate its totals."""
        current = self.budget(budget_id)
        updated = budget_aggregator.recalculate(replace(current, **changes), touch=True)
        return self._next(budgets=_replace_by_id(self.budgets, updated))

    def apply(self, budget_id: str, action: Callable[..., Budget], *args, **kwargs) -> "BudgetState":
        """
        Run a Budget -> Budget engine function on one budget.

        The result is recalculated before it replaces the stored budget.
        """
        updated = budget_aggregator.recalculate(action(self.budget(budget_id), *args, **kwargs))
        logger.debug(f"Applied {getattr(action, '__name__', action)} to budget {budget_id}")
        return self._next(budgets=_replace_by_id(self.budgets, updated))

    def remove_budget(self, budget_id: str) -> "BudgetState":
        self.budget(budget_id)
        selected = None if self.selected_budget_id == budget_id else self.selected_budget_id
        return self._next(budgets=_without_id(self.budgets, budget_id), selected_budget_id=selected)

    def select_budget(self, budget_id: Optional[str]) -> "BudgetState":
        if budget_id is not None:
            self.budget(budget_id)
        return self._next(selected_budget_id=budget_id)

    # =========================================================================
    # Templates
    # =========================================================================

    def add_template(self, template: BudgetTemplate) -> "BudgetState":
        return self._next(templates=self.templates + (template,))

    def remove_template(self, template_id: str) -> "BudgetState":
        return self._next(templates=_without_id(self.templates, template_id))

    def budget_from_template(self, template_id: str, client_id: str, **options) -> "BudgetState":
        """
        Raises:
            TemplateNotFoundError: If the template is not in the state
        """
        template = lookup_from(self.templates)(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return self.add_budget(budget_aggregator.budget_from_template(template, client_id, **options))

    # =========================================================================
    # Catalog actions
    # =========================================================================

    def add_input(self, entity: Input) -> "BudgetState":
        return self._next(inputs=self.inputs + (entity,))

    def update_input(self, input_id: str, **changes) -> "BudgetState":
        """
        Change an input. Compositions keep their price snapshots until
        refresh_composition_prices() is called.
        """
        current = self.resolve_input(input_id)
        if current is None:
            raise InputNotFoundError(input_id)
        return self._next(inputs=_replace_by_id(self.inputs, replace(current, **changes)))

    def remove_input(self, input_id: str) -> "BudgetState":
        """Drop an input; compositions that used it get a dangling-reference warning."""
        state = self._next(inputs=_without_id(self.inputs, input_id))
        return state._recompute_all()

    def add_composition(self, composition: Composition) -> "BudgetState":
        recomputed = cost_composition_engine.recompute(
            composition, self.resolve_input, self.resolve_composition
        )
        return self._next(compositions=self.compositions + (recomputed,))

    def update_composition(
        self,
        composition_id: str,
        action: Callable[..., Composition],
        *args,
        **kwargs,
    ) -> "BudgetState":
        """
        Run a composition editing helper (attach_input, set_rates, ...).

        The helper receives the lookups of this state as keyword arguments
        unless the caller passes its own.
        """
        current = self.resolve_composition(composition_id)
        if current is None:
            raise CompositionNotFoundError(composition_id)
        parameters = inspect.signature(action).parameters
        if "resolve_input" in parameters:
            kwargs.setdefault("resolve_input", self.resolve_input)
        if "resolve_composition" in parameters:
            kwargs.setdefault("resolve_composition", self.resolve_composition)
        updated = action(current, *args, **kwargs)
        updated = cost_composition_engine.recompute(
            updated, self.resolve_input, self.resolve_composition
        )
        return self._next(compositions=_replace_by_id(self.compositions, updated))

    def remove_composition(self, composition_id: str) -> "BudgetState":
        state = self._next(compositions=_without_id(self.compositions, composition_id))
        return state._recompute_all()

    def refresh_composition_prices(self) -> "BudgetState":
        """Re-snapshot every composition's prices from the current inputs."""
        refreshed = tuple(
            cost_composition_engine.refresh_prices(c, self.resolve_input, self.resolve_composition)
            for c in self.compositions
        )
        return self._next(compositions=refreshed)

    def _recompute_all(self) -> "BudgetState":
        recomputed = tuple(
            cost_composition_engine.recompute(c, self.resolve_input, self.resolve_composition)
            for c in self.compositions
        )
        return replace(self, compositions=recomputed)
