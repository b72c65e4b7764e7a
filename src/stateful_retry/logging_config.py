"""Structured logging setup for stateful retry.

The executor logs every transition (retryable failure, exhaustion, recovery,
eviction) through structlog. Applications that already configure logging can
ignore this module; standalone consumers call configure_logging(settings), or
set CONFIGURE_LOGGING and build the executor with from_settings().

Only the `stateful_retry` logger namespace gets a handler, so the host
application's root logging is left alone.
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from stateful_retry.config import Settings

LOGGER_NAMESPACE = "stateful_retry"


def app_context_processor(app_name: str, app_version: str) -> Processor:
    """Build a processor stamping every event with the application identity."""

    def add_app_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("app_version", app_version)
        return event_dict

    return add_app_context


def configure_logging(settings: "Settings") -> logging.Handler:
    """Route stateful retry logs to stdout as structured events.

    Args:
        settings: LOG_LEVEL sets the threshold, ENVIRONMENT=production selects
            JSON lines (console rendering otherwise), APP_NAME/APP_VERSION tag
            every event

    Returns:
        The handler installed on the `stateful_retry` logger. Calling again
        replaces it rather than adding a second one.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    is_production = settings.ENVIRONMENT.lower() == "production"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        app_context_processor(settings.APP_NAME, settings.APP_VERSION),
    ]

    renderer: Processor
    if is_production:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )
    handler.set_name(f"{LOGGER_NAMESPACE}-structlog")

    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    for existing in list(package_logger.handlers):
        if existing.get_name() == handler.get_name():
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    structlog.get_logger(__name__).debug(
        "Logging configured",
        log_level=settings.LOG_LEVEL,
        environment=settings.ENVIRONMENT,
        renderer="json" if is_production else "console",
    )
    return handler
