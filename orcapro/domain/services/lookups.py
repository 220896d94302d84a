"""
Reference lookups consumed by the engines.

A lookup is any callable ``resolve(id) -> entity | None``. Repositories
provide one through their ``resolve`` method; in-memory lists can be
wrapped with lookup_from().
"""
from typing import Callable, Dict, Iterable, Optional, TypeVar

from orcapro.domain.entities import Composition, Input

T = TypeVar('T')

InputLookup = Callable[[str], Optional[Input]]
CompositionLookup = Callable[[str], Optional[Composition]]


def lookup_from(entities: Iterable[T]) -> Callable[[str], Optional[T]]:
    """
    Build a lookup over an in-memory collection keyed by ``.id``.

    Args:
        entities: Inputs or compositions

    Returns:
        resolve(id) -> entity or None
    """
    index: Dict[str, T] = {entity.id: entity for entity in entities}
    return index.get


def no_lookup(_id: str) -> None:
    """Lookup that never resolves anything."""
    return None
