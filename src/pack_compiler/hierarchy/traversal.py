"""Recursive pre-order traversal of a document and its embedded children."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping, Sequence
from typing import Any, Awaitable, Callable, FrozenSet, TypeVar, Union

from .registry import DEFAULT_REGISTRY, EmbeddedKind, SchemaRegistry

C = TypeVar("C")

Visit = Callable[[Mapping[str, Any], str, C], Union[C, Awaitable[C]]]


def embedded_children(value: Any) -> list[Mapping[str, Any]]:
    """Return the child documents held by an embedded sequence field."""
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


async def traverse(
    node: Mapping[str, Any],
    collection: str,
    context: C,
    visit: Visit,
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> None:
    """Visit ``node`` and then every embedded descendant, parents first.

    ``visit`` returns the context handed to the node's children. Children of
    an embedded sequence are traversed concurrently and awaited before this
    coroutine returns.
    """
    await _traverse(node, collection, context, visit, registry, frozenset())


async def _traverse(
    node: Mapping[str, Any],
    collection: str,
    context: C,
    visit: Visit,
    registry: SchemaRegistry,
    ancestors: FrozenSet[int],
) -> None:
    # A node reachable from itself (YAML aliases) would never terminate.
    if id(node) in ancestors:
        return
    ancestors = ancestors | {id(node)}

    result = visit(node, collection, context)
    child_context = await result if inspect.isawaitable(result) else result

    for embedded in registry.schema(collection):
        value = node.get(embedded.name)
        if embedded.kind is EmbeddedKind.SEQUENCE:
            children = embedded_children(value)
            if children:
                await asyncio.gather(
                    *(
                        _traverse(
                            child,
                            embedded.target,
                            child_context,
                            visit,
                            registry,
                            ancestors,
                        )
                        for child in children
                    )
                )
        elif isinstance(value, Mapping):
            await _traverse(
                value, embedded.target, child_context, visit, registry, ancestors
            )
