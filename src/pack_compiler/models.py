from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

DEFAULT_STORE_FILENAME = "pack.db"
DEFAULT_LOG_LEVEL = "INFO"
YAML_EXTENSIONS = frozenset({".yml", ".yaml"})

TransformEntry = Callable[
    [Mapping[str, Any]], Union[Optional[bool], Awaitable[Optional[bool]]]
]


@dataclass(frozen=True)
class CompileOptions:
    recursive: bool = False
    log: bool = False
    transform_entry: Optional[TransformEntry] = None


@dataclass(frozen=True)
class CompileSummary:
    documents: int = 0
    skipped: int = 0
    entries: int = 0
    removed: int = 0
