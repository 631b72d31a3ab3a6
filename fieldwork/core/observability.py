"""
Observability Infrastructure

Structured logging with correlation tracking and Prometheus counters for the
execution-sheet workflow engine.
"""

import contextvars
import logging
import sys
import uuid
from typing import Any

import structlog
from prometheus_client import Counter

from .config import Settings, get_settings

# Bound per workflow operation by the coordinator
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="")

# Prometheus metrics
WORKFLOW_OPERATIONS = Counter(
    "fieldwork_workflow_operations_total",
    "Workflow operations executed by the coordinator",
    ["operation", "status"],
)

TRANSACTION_CONFLICTS = Counter(
    "fieldwork_transaction_conflicts_total",
    "Store write conflicts that forced a transaction retry",
    ["operation"],
)

NOTIFICATION_FAILURES = Counter(
    "fieldwork_notification_failures_total",
    "Notification sink deliveries that raised",
    ["event_type"],
)


class CorrelationIdProcessor:
    """Adds the workflow operation id and the caller to every event."""

    def __call__(
        self, logger: Any, name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        correlation_id = correlation_id_var.get("")
        user_id = user_id_var.get("")

        if correlation_id:
            event_dict["correlation_id"] = correlation_id
        if user_id:
            event_dict["user_id"] = user_id

        return event_dict


def setup_structured_logging(settings: Settings | None = None) -> None:
    """Configure structlog and stdlib logging from LOG_LEVEL, LOG_FORMAT and LOG_SQL."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        CorrelationIdProcessor(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.add_log_level,
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "local")
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if settings.LOG_SQL:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to the emitting module's name."""
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Tag every log line of the current workflow operation with one id."""
    correlation_id = correlation_id or uuid.uuid4().hex
    correlation_id_var.set(correlation_id)
    return correlation_id


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def get_correlation_id() -> str:
    return correlation_id_var.get("")


def log_error_with_context(
    error: Exception,
    operation: str,
    context: dict[str, Any] | None = None,
    severity: str = "error",
) -> None:
    """
    Log a failed workflow step.

    Domain errors contribute their ``error_type`` and ``details``; anything
    else is logged by class name.
    """
    log = get_logger("fieldwork.errors")

    fields: dict[str, Any] = {
        "operation": operation,
        "error_class": type(error).__name__,
        "error_message": str(error),
    }
    error_type = getattr(error, "error_type", None)
    if error_type is not None:
        fields["error_type"] = getattr(error_type, "value", error_type)
    details = getattr(error, "details", None)
    if details:
        fields["error_details"] = details
    fields.update(context or {})

    emit = {"error": log.error, "warning": log.warning}.get(severity, log.info)
    emit("Workflow step failed", **fields)
