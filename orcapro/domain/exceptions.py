"""
Domain Exceptions for the Budget Engine.

Custom exceptions enforcing business rules:
- Boundary validation of numeric input
- Reference integrity between budgets, compositions and inputs
- Composition nesting structure
- Lookup of persisted aggregates
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationError(DomainError):
    """Raised when data validation fails at the engine boundary."""

    def __init__(self, field: str, message: str):
        super().__init__(f"Validation failed for '{field}': {message}", code="VALIDATION_ERROR")
        self.field = field


# =============================================================================
# Reference Integrity
# =============================================================================

class ReferenceIntegrityWarning(UserWarning):
    """
    A line item or composition item points at a missing Input/Composition.

    Never raised by the engine. Instances are collected into results so the
    caller can surface them while the budget view keeps working.
    """

    def __init__(self, reference_id: str, reference_type: str = "INPUT", owner_id: str = ""):
        self.reference_id = reference_id
        self.reference_type = reference_type
        self.owner_id = owner_id
        owner = f" (referenced by '{owner_id}')" if owner_id else ""
        super().__init__(f"{reference_type.title()} '{reference_id}' not found{owner}")

    def __eq__(self, other):
        if not isinstance(other, ReferenceIntegrityWarning):
            return NotImplemented
        return (self.reference_id, self.reference_type, self.owner_id) == (
            other.reference_id, other.reference_type, other.owner_id
        )

    def __hash__(self):
        return hash((self.reference_id, self.reference_type, self.owner_id))


# =============================================================================
# Composition Exceptions
# =============================================================================

class CompositionNotFoundError(DomainError):
    """Raised when a composition cannot be found."""

    def __init__(self, composition_id: str):
        message = f"Composition with id '{composition_id}' not found"
        super().__init__(message, code="COMPOSITION_NOT_FOUND")
        self.composition_id = composition_id


class CompositionCycleError(DomainError):
    """Raised when nested compositions reference each other in a loop."""

    def __init__(self, path: list):
        chain = " -> ".join(str(p) for p in path)
        super().__init__(f"Composition cycle detected: {chain}", code="COMPOSITION_CYCLE")
        self.path = list(path)


class CompositionDepthError(DomainError):
    """Raised when nested compositions exceed the configured depth."""

    def __init__(self, composition_id: str, max_depth: int):
        message = (
            f"Composition '{composition_id}' exceeds the maximum "
            f"nesting depth of {max_depth}"
        )
        super().__init__(message, code="COMPOSITION_TOO_DEEP")
        self.composition_id = composition_id
        self.max_depth = max_depth


class InputNotFoundError(DomainError):
    """Raised when a priced input cannot be found."""

    def __init__(self, input_id: str):
        message = f"Input with id '{input_id}' not found"
        super().__init__(message, code="INPUT_NOT_FOUND")
        self.input_id = input_id


# =============================================================================
# Budget Exceptions
# =============================================================================

class BudgetNotFoundError(DomainError):
    """Raised when a budget entity cannot be found."""

    def __init__(self, budget_id: str):
        message = f"Budget with id '{budget_id}' not found"
        super().__init__(message, code="BUDGET_NOT_FOUND")
        self.budget_id = budget_id


class BudgetItemNotFoundError(DomainError):
    """Raised when a line item is not part of the budget."""

    def __init__(self, item_id: str, budget_id: str = ""):
        message = f"Budget item '{item_id}' not found"
        if budget_id:
            message += f" in budget '{budget_id}'"
        super().__init__(message, code="BUDGET_ITEM_NOT_FOUND")
        self.item_id = item_id
        self.budget_id = budget_id


class TemplateNotFoundError(DomainError):
    """Raised when a budget template cannot be found."""

    def __init__(self, template_id: str):
        message = f"Budget template with id '{template_id}' not found"
        super().__init__(message, code="TEMPLATE_NOT_FOUND")
        self.template_id = template_id


# =============================================================================
# Schedule / Measurement Exceptions
# =============================================================================

class PeriodNotFoundError(DomainError):
    """Raised when a schedule period is not defined on the budget."""

    def __init__(self, period_id: str):
        message = f"Schedule period '{period_id}' not found"
        super().__init__(message, code="PERIOD_NOT_FOUND")
        self.period_id = period_id


class MeasurementNotFoundError(DomainError):
    """Raised when a measurement is not stored on the budget."""

    def __init__(self, measurement_id: str):
        message = f"Measurement '{measurement_id}' not found"
        super().__init__(message, code="MEASUREMENT_NOT_FOUND")
        self.measurement_id = measurement_id
