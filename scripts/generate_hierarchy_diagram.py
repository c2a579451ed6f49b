#!/usr/bin/env python3
"""
Generate a Mermaid diagram of the document hierarchy.

Each collection becomes an entity listing its embedded fields. Embedded
sequences are drawn as one-to-many edges and embedded singletons as
one-to-zero-or-one edges, labelled with the field that holds the children.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from pack_compiler.hierarchy import (DEFAULT_REGISTRY, EmbeddedKind,
                                     SchemaRegistry, load_registry)


def entity_name(collection: str) -> str:
    """Mermaid entity names may not contain dots."""
    return collection.replace(".", "_")


def build_mermaid(registry: SchemaRegistry) -> str:
    lines = ["erDiagram"]

    collections = set(registry.collections())
    for spec in registry.specs.values():
        collections.update(field.target for field in spec.fields)

    for collection in sorted(collections):
        lines.append(f"    {entity_name(collection)} {{")
        lines.append("        string key PK")
        lines.append("        string id")
        for field in registry.schema(collection):
            col_type = "list" if field.kind is EmbeddedKind.SEQUENCE else "ref"
            lines.append(f"        {col_type} {field.name} FK")
        lines.append("    }")

    for name in sorted(registry.collections()):
        for field in registry.schema(name):
            child_symbol = "o{" if field.kind is EmbeddedKind.SEQUENCE else "o|"
            lines.append(
                f"    {entity_name(name)} ||--{child_symbol} "
                f'{entity_name(field.target)} : "{field.name}"'
            )

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--hierarchy",
        default=None,
        type=Path,
        help="YAML hierarchy definition; the built-in hierarchy by default.",
    )
    parser.add_argument(
        "--output",
        default=Path("docs/hierarchy.mmd"),
        type=Path,
        help="Path of the generated Mermaid diagram.",
    )
    args = parser.parse_args()

    registry = load_registry(args.hierarchy) if args.hierarchy else DEFAULT_REGISTRY
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(build_mermaid(registry), encoding="utf-8")


if __name__ == "__main__":
    main()
