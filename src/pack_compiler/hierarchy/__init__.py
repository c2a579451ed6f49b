"""Document hierarchy description, traversal and normalization."""

from .normalizer import child_identifier, normalize
from .registry import (DEFAULT_REGISTRY, CollectionSpec, EmbeddedField,
                       EmbeddedKind, SchemaRegistry, load_registry, sequence,
                       singleton)
from .traversal import traverse

__all__ = [
    "DEFAULT_REGISTRY",
    "CollectionSpec",
    "EmbeddedField",
    "EmbeddedKind",
    "SchemaRegistry",
    "child_identifier",
    "load_registry",
    "normalize",
    "sequence",
    "singleton",
    "traverse",
]
