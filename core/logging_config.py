"""
Structlog setup for the client.

Events go through the stdlib `paygate` logger so a host application decides
where they end up; the client only attaches its own handler there.
"""
import logging
import json
from typing import Any, List, MutableMapping, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import Settings, get_settings

LOGGER_NAMESPACE = "paygate"

# keys whose values must never reach a log line, at any nesting depth
SENSITIVE_KEYS = frozenset({"authorization", "private_key", "headers", "cvc", "number", "iban"})
REDACTED = "***"


def sanitize(data: Any) -> Any:
    """Copy of `data` with sensitive keys masked in nested dicts, lists and tuples."""
    if isinstance(data, dict):
        return {k: (REDACTED if str(k).lower() in SENSITIVE_KEYS else sanitize(v)) for k, v in data.items()}
    if isinstance(data, list):
        return [sanitize(v) for v in data]
    if isinstance(data, tuple):
        return tuple(sanitize(v) for v in data)
    return data


def redact_sensitive(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in list(event_dict):
        event_dict[key] = REDACTED if key.lower() in SENSITIVE_KEYS else sanitize(event_dict[key])
    return event_dict


def _json_dumps(obj: Any, default: Any = None, **kwargs: Any) -> str:
    # structlog hands default/sort_keys to the serializer
    return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)


def get_renderer(debug: bool) -> Any:
    if debug:
        return ConsoleRenderer(colors=True)
    return JSONRenderer(serializer=_json_dumps)


def configure_logging(settings: Optional[Settings] = None, stream: Any = None) -> None:
    """Route structlog through stdlib logging under the `paygate` logger.

    DEBUG settings switch to console rendering and debug level, which also
    turns on request/response tracing in the HTTP service.
    """
    settings = settings or get_settings()

    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared_pre_chain, ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[ProcessorFormatter.remove_processors_meta, get_renderer(settings.DEBUG)],
    )
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    client_logger = logging.getLogger(LOGGER_NAMESPACE)
    client_logger.handlers.clear()
    client_logger.addHandler(handler)
    client_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """structlog logger below the `paygate` namespace, e.g. `paygate.application.services.cancel_service`."""
    return structlog.get_logger(f"{LOGGER_NAMESPACE}.{name}")
