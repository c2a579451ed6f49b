"""Embedded collection descriptors for every document collection."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Tuple

import yaml

from ..errors import SchemaError


class EmbeddedKind(enum.Enum):
    SEQUENCE = "sequence"
    SINGLETON = "singleton"


@dataclass(frozen=True)
class EmbeddedField:
    """An embedded child field and the collection its children belong to."""

    name: str
    kind: EmbeddedKind
    collection: Optional[str] = None

    @property
    def target(self) -> str:
        return self.collection or self.name


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    fields: Tuple[EmbeddedField, ...] = ()


def sequence(name: str, collection: Optional[str] = None) -> EmbeddedField:
    return EmbeddedField(name, EmbeddedKind.SEQUENCE, collection)


def singleton(name: str, collection: Optional[str] = None) -> EmbeddedField:
    return EmbeddedField(name, EmbeddedKind.SINGLETON, collection)


@dataclass(frozen=True)
class SchemaRegistry:
    """Lookup table of collection specs; unknown collections have no children."""

    specs: Mapping[str, CollectionSpec] = field(default_factory=dict)

    @classmethod
    def of(cls, *specs: CollectionSpec) -> "SchemaRegistry":
        return cls({spec.name: spec for spec in specs})

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "SchemaRegistry":
        """Build a registry from ``{collection: {field: [] | {}}}``.

        A list marker declares an embedded sequence and a mapping marker an
        embedded singleton. A marker may carry a ``collection`` entry naming
        the target collection when it differs from the field name, e.g.
        ``{"items": {"sequence": true, "collection": "actors.items"}}``.
        """
        if not isinstance(raw, Mapping):
            raise SchemaError("Hierarchy definition must be a mapping of collections")

        specs = []
        for collection, embedded in raw.items():
            embedded = embedded or {}
            if not isinstance(embedded, Mapping):
                raise SchemaError(
                    f"Embedded fields of collection '{collection}' must be a mapping"
                )
            fields = [
                _parse_field(collection, name, marker)
                for name, marker in embedded.items()
            ]
            specs.append(CollectionSpec(str(collection), tuple(fields)))
        return cls.of(*specs)

    def schema(self, collection: str) -> Tuple[EmbeddedField, ...]:
        spec = self.specs.get(collection)
        return spec.fields if spec is not None else ()

    def collections(self) -> Iterable[str]:
        return tuple(self.specs)


def _parse_field(collection: str, name: str, marker: Any) -> EmbeddedField:
    if isinstance(marker, list):
        return sequence(name)
    if isinstance(marker, Mapping):
        target = marker.get("collection")
        if marker.get("sequence"):
            return sequence(name, target)
        return singleton(name, target)
    raise SchemaError(
        f"Embedded field '{collection}.{name}' must be declared as [] or {{}}, "
        f"got {marker!r}"
    )


def load_registry(path: Path) -> SchemaRegistry:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise SchemaError(f"Failed to load hierarchy from {path}: {exc}") from exc
    return SchemaRegistry.from_mapping(raw or {})


DEFAULT_REGISTRY = SchemaRegistry.of(
    CollectionSpec("actors", (sequence("items"), sequence("effects"))),
    CollectionSpec("cards", (sequence("cards"),)),
    CollectionSpec("combats", (sequence("combatants"),)),
    CollectionSpec("delta", (sequence("items"), sequence("effects"))),
    CollectionSpec("items", (sequence("effects"),)),
    CollectionSpec("journal", (sequence("pages"),)),
    CollectionSpec("playlists", (sequence("sounds"),)),
    CollectionSpec("regions", (sequence("behaviors"),)),
    CollectionSpec("tables", (sequence("results"),)),
    CollectionSpec("tokens", (singleton("delta"),)),
    CollectionSpec(
        "scenes",
        (
            sequence("drawings"),
            sequence("tokens"),
            sequence("lights"),
            sequence("notes"),
            sequence("regions"),
            sequence("sounds"),
            sequence("templates"),
            sequence("tiles"),
            sequence("walls"),
        ),
    ),
)
