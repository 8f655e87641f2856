"""Structured logging configuration for meta-registry."""

import logging
from typing import Any, Dict

import structlog


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structured logging with deployment ID tracking.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render events as JSON, otherwise as console lines
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            # Add deployment_id / request_id if bound in context
            _add_context_ids,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _add_context_ids(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add deployment_id and request_id to log event if available in context."""
    from structlog.contextvars import get_contextvars

    context = get_contextvars()
    for key in ("deployment_id", "request_id"):
        if key in context:
            event_dict.setdefault(key, context[key])

    return event_dict


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


class DeploymentContext:
    """Context manager for setting the deployment ID in logging context."""

    def __init__(self, deployment_id: str):
        self.deployment_id = deployment_id
        self.tokens = None

    def __enter__(self):
        from structlog.contextvars import bind_contextvars
        self.tokens = bind_contextvars(deployment_id=self.deployment_id)
        return self.deployment_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        from structlog.contextvars import reset_contextvars
        if self.tokens:
            reset_contextvars(**self.tokens)


class RequestContext:
    """Context manager for setting a request ID in logging context."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        self.tokens = None

    def __enter__(self):
        from structlog.contextvars import bind_contextvars
        self.tokens = bind_contextvars(request_id=self.request_id)
        return self.request_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        from structlog.contextvars import reset_contextvars
        if self.tokens:
            reset_contextvars(**self.tokens)
