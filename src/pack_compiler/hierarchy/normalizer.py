"""Replace embedded child documents with references to their identifiers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, List

from .registry import DEFAULT_REGISTRY, EmbeddedKind, SchemaRegistry

KEY_FIELD = "key"
ID_FIELD = "id"


def child_identifier(child: Any) -> Any:
    if isinstance(child, Mapping):
        return child.get(ID_FIELD)
    # Anything else is already a reference.
    return child


def _sequence_items(value: Any) -> List[Any]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return []
    return [item for item in value if item is not None]


def normalize(
    doc: Mapping[str, Any],
    collection: str,
    registry: SchemaRegistry = DEFAULT_REGISTRY,
    identify: Callable[[Any], Any] = child_identifier,
) -> Dict[str, Any]:
    """Return the persisted value for ``doc``.

    The result is a shallow copy without the ``key`` field in which every
    embedded sequence is a list of child identifiers (empty when absent) and
    every embedded singleton is an identifier or ``None``.
    """
    value = {name: item for name, item in doc.items() if name != KEY_FIELD}
    for embedded in registry.schema(collection):
        current = doc.get(embedded.name)
        if embedded.kind is EmbeddedKind.SEQUENCE:
            value[embedded.name] = [identify(item) for item in _sequence_items(current)]
        else:
            value[embedded.name] = identify(current) if current is not None else None
    return value
