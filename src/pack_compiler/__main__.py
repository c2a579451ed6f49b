from __future__ import annotations

import asyncio
import sys

from dotenv import load_dotenv
from rich.console import Console

from .config import Settings
from .errors import PackError
from .hierarchy import DEFAULT_REGISTRY, load_registry
from .logging_utils import get_logger, setup_logging
from .writer import compile_pack

console = Console(stderr=True)
LOGGER = get_logger()


def escape_message(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def report_failure(message: str, code: int) -> None:
    """Emit a workflow fatal status for ``message`` and exit with ``code``."""
    print(f"::error::{escape_message(message)}", flush=True)
    sys.exit(code)


def load_config() -> Settings:
    """Load settings from the environment, honouring a local .env file."""
    load_dotenv()
    return Settings.from_env()


def main() -> None:
    try:
        settings = load_config()
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        setup_logging(console=console)
        LOGGER.error("Configuration error: %s", exc)
        report_failure(f"Configuration error: {exc}", 1)
        return

    setup_logging(settings.log_level, console=console)
    LOGGER.info("Compiling %s to %s", settings.src, settings.dest)

    try:
        registry = (
            load_registry(settings.hierarchy)
            if settings.hierarchy is not None
            else DEFAULT_REGISTRY
        )
        asyncio.run(
            compile_pack(
                settings.src,
                settings.dest,
                settings.compile_options(),
                registry=registry,
            )
        )
    except PackError as exc:
        LOGGER.exception("Pack compilation failed")
        report_failure(str(exc), 2)
    except Exception as exc:  # pragma: no cover - guard for CLI usage
        LOGGER.exception("Unexpected failure")
        report_failure(str(exc), 3)


if __name__ == "__main__":
    main()
