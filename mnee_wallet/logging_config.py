"""
Structured logging for the wallet service.

Every record, including the stdlib records from the provider modules and
uvicorn, is stamped with the current wallet session (address, network,
status and epoch) so a log line can be tied to the session it belongs to.
Console output at DEBUG, JSON lines otherwise.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog

from .config import settings


WALLET_CONTEXT_KEYS = ("wallet_address", "network_id", "wallet_status", "wallet_epoch")

# Process-wide: the session outlives any one request or task
_wallet_context: Dict[str, Any] = {}


def set_wallet_context(**fields: Any) -> None:
    """Replace the wallet fields stamped on log records. ``None`` values are dropped."""
    unknown = set(fields) - set(WALLET_CONTEXT_KEYS)
    if unknown:
        raise ValueError(f"Unknown wallet context fields: {sorted(unknown)}")
    _wallet_context.clear()
    _wallet_context.update({k: v for k, v in fields.items() if v is not None})


def get_wallet_context() -> Dict[str, Any]:
    return dict(_wallet_context)


def clear_wallet_context() -> None:
    _wallet_context.clear()


def add_wallet_context(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Processor: add the current wallet fields without overriding explicit ones."""
    for key, value in _wallet_context.items():
        event_dict.setdefault(key, value)
    return event_dict


def _quiet_third_party(level: int) -> None:
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def setup_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
        json_logs: Force JSON (True) or console (False) output. By default
            DEBUG renders to the console and everything else as JSON.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = level != logging.DEBUG

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_wallet_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # f-string records from providers get the same wallet fields
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    _quiet_third_party(level)
