"""Source file enumeration and decoding."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

import yaml

from .errors import DecodeError
from .models import YAML_EXTENSIONS


def find_source_files(root: Path, recursive: bool = False) -> List[Path]:
    """Return the files below ``root`` in a stable, sorted order."""
    if not root.is_dir():
        raise FileNotFoundError(f"Source directory {root} does not exist")

    files: List[Path] = []
    for entry in sorted(root.iterdir()):
        if entry.is_dir():
            if recursive:
                files.extend(find_source_files(entry, recursive=True))
            continue
        if entry.is_file():
            files.append(entry)
    return files


def decode_file(path: Path) -> Any:
    """Parse ``path`` as YAML or JSON depending on its extension."""
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DecodeError(path, str(exc)) from exc

    if path.suffix.lower() in YAML_EXTENSIONS:
        try:
            return yaml.safe_load(contents)
        except yaml.YAMLError as exc:
            raise DecodeError(path, str(exc)) from exc

    try:
        return json.loads(contents)
    except json.JSONDecodeError as exc:
        raise DecodeError(path, str(exc)) from exc
