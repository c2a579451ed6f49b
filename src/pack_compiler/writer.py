from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, StrictStr, ValidationError, field_validator

from .decoder import decode_file, find_source_files
from .errors import DuplicateKeyError, SchemaError
from .hierarchy import DEFAULT_REGISTRY, SchemaRegistry, normalize, traverse
from .models import CompileOptions, CompileSummary
from .store import PackStore, WriteBatch

LOGGER = logging.getLogger("pack_compiler.writer")


class NodeEnvelope(BaseModel):
    key: StrictStr

    @field_validator("key")
    @classmethod
    def key_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("key must not be empty")
        return value


class DocumentEnvelope(NodeEnvelope):
    @field_validator("key")
    @classmethod
    def key_names_collection(cls, value: str) -> str:
        segments = value.split("!")
        if len(segments) < 2 or not segments[1]:
            raise ValueError(f"key {value!r} does not name a collection")
        return value

    @property
    def collection(self) -> str:
        return self.key.split("!")[1]


@dataclass
class PackContext:
    """State shared by every node visit of one compile run."""

    source: Path
    seen: Dict[str, Path]
    batch: WriteBatch
    registry: SchemaRegistry


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    return errors[0]["msg"] if errors else str(exc)


def node_key(node: Mapping[str, Any], source: Path) -> str:
    try:
        return NodeEnvelope.model_validate(node).key
    except ValidationError as exc:
        raise SchemaError(
            f"Invalid entry key in {source}: {_first_error(exc)}"
        ) from exc


def document_collection(doc: Any, source: Path) -> str:
    if not isinstance(doc, Mapping):
        raise SchemaError(f"{source} does not contain a document mapping")
    try:
        return DocumentEnvelope.model_validate(doc).collection
    except ValidationError as exc:
        raise SchemaError(
            f"Invalid document key in {source}: {_first_error(exc)}"
        ) from exc


def pack_node(
    node: Mapping[str, Any], collection: str, context: PackContext
) -> PackContext:
    key = node_key(node, context.source)
    first_source = context.seen.get(key)
    if first_source is not None:
        raise DuplicateKeyError(key, context.source, first_source)
    context.seen[key] = context.source
    context.batch.put(key, normalize(node, collection, context.registry))
    return context


async def pack_file(
    path: Path,
    batch: WriteBatch,
    seen: Dict[str, Path],
    options: CompileOptions,
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> bool:
    """Stage every entry of one source file; return False if it was excluded."""
    doc = await asyncio.to_thread(decode_file, path)
    collection = document_collection(doc, path)

    if options.transform_entry is not None:
        verdict = options.transform_entry(doc)
        if inspect.isawaitable(verdict):
            verdict = await verdict
        if verdict is False:
            LOGGER.debug("Excluded %s by transform hook", path)
            return False

    context = PackContext(source=path, seen=seen, batch=batch, registry=registry)
    await traverse(doc, collection, context, pack_node, registry)
    if options.log:
        LOGGER.info("Packed %s (%s)", doc.get("id"), doc.get("name"))
    return True


async def stage_deletions(
    store: PackStore, batch: WriteBatch, seen: Dict[str, Path], log: bool = False
) -> int:
    removed = 0
    for key in await store.keys():
        if key in seen:
            continue
        batch.delete(key)
        removed += 1
        if log:
            LOGGER.info("Removed %s", key)
    return removed


async def compile_pack(
    src: Union[str, Path],
    dest: Union[str, Path],
    options: Optional[CompileOptions] = None,
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> CompileSummary:
    """Compile the documents under ``src`` into the pack store at ``dest``.

    Every put and delete is staged in one batch and committed at the end, so
    a failure leaves an existing pack untouched.
    """
    options = options or CompileOptions()
    files = find_source_files(Path(src), recursive=options.recursive)

    documents = skipped = 0
    async with PackStore(Path(dest)) as store:
        batch = store.batch()
        seen: Dict[str, Path] = {}

        for path in files:
            try:
                packed = await pack_file(path, batch, seen, options, registry)
            except Exception:
                if options.log:
                    LOGGER.error("Failed to pack %s. See error below.", path)
                raise
            if packed:
                documents += 1
            else:
                skipped += 1

        removed = await stage_deletions(store, batch, seen, options.log)
        await store.write(batch)
        await store.compact()

    summary = CompileSummary(
        documents=documents, skipped=skipped, entries=len(seen), removed=removed
    )
    LOGGER.info(
        "Compiled %s documents into %s entries (%s skipped, %s removed)",
        summary.documents,
        summary.entries,
        summary.skipped,
        summary.removed,
    )
    return summary
