"""structlog setup for the ledger service.

Every event carries the service name and version. Production renders one
JSON object per line; other environments get the console renderer.
Standard library records (uvicorn, redis) pass through the same chain.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from . import __version__

SERVICE_NAME = "tournament-ledger"

# loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "redis", "httpx", "httpcore")


def _stamp_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _stamp_service,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(log_level: str = "INFO", app_env: str = "development") -> None:
    """Route structlog and stdlib logging through one renderer."""
    pre_chain = _pre_chain()
    if app_env == "production":
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        pre_chain.append(structlog.dev.set_exc_info)
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind values (request_id, caller) to every log call in the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
