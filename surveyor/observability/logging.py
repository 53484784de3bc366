"""Structured logging configuration using structlog.

Selection runs log one event per stage plus a summary event. Customer
context travels through the pipeline, so the processor chain redacts
contact details and payment data before anything is rendered.
"""

import re
import sys
from collections.abc import MutableMapping
from typing import Any, cast
from uuid import UUID

import structlog
from structlog.types import EventDict, WrappedLogger

# Keys whose values are always replaced
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "phone",
    "phone_number",
    "customer_phone",
    "email",
    "customer_email",
    "card_number",
    "card_last_four",
    "iban",
    "swish_number",
    "personal_number",
    "password",
    "token",
    "api_key",
    "authorization",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"(?<![\w-])\+?\d[\d\s\-]{8,}\d(?![\w-])")

LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class PIIRedactor:
    """Processor that redacts customer PII from log events.

    Sensitive key names are replaced outright; string values are scanned
    for e-mail addresses and phone numbers as a fallback.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact_mapping(event_dict))

    def _redact_mapping(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in SENSITIVE_KEYS:
                result[key] = "[REDACTED]"
            else:
                result[key] = self._redact_value(value)
        return result

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self._redact_mapping(value)
        if isinstance(value, str):
            value = EMAIL_PATTERN.sub("[EMAIL]", value)
            return PHONE_PATTERN.sub("[PHONE]", value)
        if isinstance(value, (list, tuple)):
            return [self._redact_value(item) for item in value]
        return value


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for production, "console" for development
        redact_pii: Whether to redact customer PII from events
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_pii:
        processors.append(PIIRedactor())

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LEVELS.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to the given module name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


def bind_selection_context(business_id: UUID, interaction_id: UUID) -> None:
    """Bind run identifiers so every event of a selection run carries them."""
    structlog.contextvars.bind_contextvars(
        business_id=str(business_id),
        interaction_id=str(interaction_id),
    )


def clear_selection_context() -> None:
    """Remove run identifiers bound by bind_selection_context."""
    structlog.contextvars.unbind_contextvars("business_id", "interaction_id")
