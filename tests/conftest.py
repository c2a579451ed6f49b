from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest
import yaml

from pack_compiler.hierarchy import CollectionSpec, SchemaRegistry, sequence
from pack_compiler.store import PackStore


def _write(directory: Path, name: str, text: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write_json():
    def _write_json(directory: Path, name: str, doc: Dict[str, Any]) -> Path:
        return _write(directory, name, json.dumps(doc))

    return _write_json


@pytest.fixture
def write_yaml():
    def _write_yaml(directory: Path, name: str, doc: Dict[str, Any]) -> Path:
        return _write(directory, name, yaml.safe_dump(doc, sort_keys=False))

    return _write_yaml


@pytest.fixture
def read_pack():
    def _read_pack(dest: Path) -> Dict[str, Any]:
        async def _read() -> List[Tuple[str, Any]]:
            async with PackStore(dest) as store:
                return await store.items()

        return dict(asyncio.run(_read()))

    return _read_pack


@pytest.fixture
def seed_pack():
    def _seed_pack(dest: Path, entries: Dict[str, Any]) -> None:
        async def _seed() -> None:
            async with PackStore(dest) as store:
                batch = store.batch()
                for key, value in entries.items():
                    batch.put(key, value)
                await store.write(batch)

        asyncio.run(_seed())

    return _seed_pack


@pytest.fixture
def actor_registry() -> SchemaRegistry:
    return SchemaRegistry.of(
        CollectionSpec(
            "actors", (sequence("items", "actors.items"), sequence("effects"))
        ),
        CollectionSpec("actors.items", (sequence("effects"),)),
    )


@pytest.fixture
def hero() -> Dict[str, Any]:
    return {
        "key": "w!actors!A1",
        "id": "A1",
        "name": "Hero",
        "items": [{"key": "w!actors.items!I1", "id": "I1", "name": "Sword"}],
    }
