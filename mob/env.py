from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import structlog

from .constants import LOGGER

_ENV_REFERENCE = re.compile(r"\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))")

LOG_ENCODINGS = {"json", "console"}


def expand_env(text: str) -> str:
    """Replace ``$VAR`` and ``${VAR}`` with environment values.

    Unset variables expand to an empty string.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        return os.environ.get(name, "")

    return _ENV_REFERENCE.sub(_replace, text)


def load_env(path: str | Path | None = None) -> None:
    env_path = Path(path) if path is not None else Path.cwd() / ".env"
    if not env_path.exists():
        return
    from dotenv import load_dotenv

    load_dotenv(env_path, override=False)


def build_formatter(encoding: str) -> logging.Formatter:
    """Render stdlib records as JSON lines or console text through structlog."""
    if encoding not in LOG_ENCODINGS:
        raise RuntimeError(f"Unsupported logger encoding {encoding!r}.")

    if encoding == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(level: int, encoding: str) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(encoding))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    LOGGER.setLevel(level)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
    return handler
