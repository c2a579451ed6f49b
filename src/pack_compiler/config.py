"""Configuration loading for the pack compiler."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .models import DEFAULT_LOG_LEVEL, CompileOptions

TRUE_VALUES = {"1", "true", "yes", "on"}


def _bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in TRUE_VALUES


def _input(env: Mapping[str, str], name: str) -> Optional[str]:
    # GitHub Actions exposes `with:` inputs as INPUT_<NAME>.
    value = env.get(f"INPUT_{name.upper()}")
    if value is None:
        return None
    return value.strip() or None


@dataclass(frozen=True)
class Settings:
    src: Path
    dest: Path
    recursive: bool = False
    log: bool = False
    hierarchy: Optional[Path] = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env

        src = _input(env, "src")
        dest = _input(env, "dest")
        if not (src and dest):
            raise RuntimeError(
                "INPUT_SRC and INPUT_DEST environment variables are required"
            )
        hierarchy = _input(env, "hierarchy")

        return cls(
            src=Path(src),
            dest=Path(dest),
            recursive=_bool(_input(env, "recursive"), False),
            log=_bool(_input(env, "log"), False),
            hierarchy=Path(hierarchy) if hierarchy else None,
            log_level=env.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )

    def compile_options(self) -> CompileOptions:
        return CompileOptions(recursive=self.recursive, log=self.log)
