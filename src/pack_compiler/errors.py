"""Exceptions raised while compiling a pack."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PackError(Exception):
    """Base exception for pack compilation errors."""


class DecodeError(PackError):
    """Raised when a source file is not valid JSON or YAML."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to decode {path}: {reason}")
        self.path = path


class SchemaError(PackError):
    """Raised when a document key or a hierarchy definition is malformed."""


class DuplicateKeyError(PackError):
    """Raised when two nodes in one run share the same key."""

    def __init__(
        self,
        key: str,
        source: Optional[Path] = None,
        first_source: Optional[Path] = None,
    ) -> None:
        message = (
            f"An entry with key '{key}' was already packed and would be "
            "overwritten by this entry"
        )
        if source is not None and first_source is not None:
            message += f" ({source}; first packed from {first_source})"
        super().__init__(message)
        self.key = key
        self.source = source
        self.first_source = first_source


class StoreError(PackError):
    """Raised when the underlying key-value store fails."""
