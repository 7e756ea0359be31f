"""Structured logging for the PlaceKit client.

Every module logs through ``structlog.get_logger(__name__)``. Once structlog
is routed through the standard library, events land on the ``placekit``
logger and its children.

:func:`configure_logging` is for applications that want the client to
render its own events (console in development, JSON in production). It only
touches the ``placekit`` logger; root handlers are left alone. The client
calls it on construction when ``PLACEKIT_CONFIGURE_LOGGING`` is set.
"""

import logging
import sys
from typing import IO, Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from placekit.config import Settings, settings as default_settings

LOGGER_NAME = "placekit"
HANDLER_NAME = "placekit-structlog"


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every event with the client name."""
    event_dict["app"] = LOGGER_NAME
    return event_dict


def build_processors(environment: str) -> tuple[list, structlog.types.Processor]:
    """Return the shared processor chain and the final renderer for ``environment``."""
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
    ]
    if environment.lower() == "production":
        processors.append(structlog.processors.format_exc_info)
        return processors, structlog.processors.JSONRenderer()
    return processors, structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(
    settings: Optional[Settings] = None, stream: Optional[IO[str]] = None
) -> logging.Handler:
    """Render PlaceKit events on ``stream`` (stderr by default).

    Level and renderer come from ``settings.LOG_LEVEL`` and
    ``settings.ENVIRONMENT``. Calling it again replaces the handler it
    installed before instead of stacking a second one.

    Returns:
        The handler attached to the ``placekit`` logger
    """
    settings = settings or default_settings
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    processors, renderer = build_processors(settings.ENVIRONMENT)

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=processors)
    )

    package_logger = logging.getLogger(LOGGER_NAME)
    for existing in list(package_logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    # Rendered here; propagating would print each event twice
    package_logger.propagate = False

    structlog.get_logger(__name__).debug(
        "Logging configured",
        log_level=settings.LOG_LEVEL,
        environment=settings.ENVIRONMENT,
    )
    return handler
