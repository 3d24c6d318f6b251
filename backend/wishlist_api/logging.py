"""structlog configuration for the API process.

Library loggers (uvicorn, httpx, sqlalchemy) are routed through the same
renderer so a request's log lines share one format and one request_id.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

import structlog

from wishlist_api.config import settings

_QUIET_LIBRARIES = ("httpx", "httpcore", "anthropic", "sqlalchemy.engine")


class _TeeWriter:
    """Write to stdout and append to a JSON-lines log file.

    A file that cannot be opened or written is dropped; stdout keeps working.
    """

    def __init__(self, file_path: str) -> None:
        self._file: IO[str] | None = None
        try:
            self._file = open(file_path, "a")  # noqa: SIM115
        except OSError as exc:
            print(
                f"WARNING: Could not open log file {file_path!r}: {exc}. "
                "Logging to stdout only.",
                file=sys.stderr,
            )

    def _disable(self, action: str) -> None:
        self._file = None
        print(f"WARNING: Log file {action} failed. File logging disabled.", file=sys.stderr)

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is None:
            return
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError):
            self._disable("write")

    def flush(self) -> None:
        sys.stdout.flush()
        if self._file is None:
            return
        try:
            self._file.flush()
        except (OSError, ValueError):
            self._disable("flush")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Console output in development, JSON lines everywhere else.

    LOG_FILE additionally tees every line into that file.
    """
    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer()
        if settings.environment == "development"
        else structlog.processors.JSONRenderer()
    )
    level = _resolve_level(settings.log_level)
    stream = _TeeWriter(settings.log_file) if settings.log_file else sys.stdout

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),  # type: ignore[arg-type]
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)  # type: ignore[arg-type]
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
