"""structlog configuration shared by the worker and embedding applications."""

import logging

import structlog

from mindscape.config import Settings

# Libraries that log every statement or job at INFO.
NOISY_LOGGERS = ("sqlalchemy.engine", "arq.worker", "asyncio")


def _service_context(settings: Settings) -> structlog.types.Processor:
    def add_context(_logger, _method, event_dict):  # type: ignore[no-untyped-def]
        event_dict.setdefault("service", "mindscape")
        event_dict.setdefault("environment", settings.environment)
        event_dict.setdefault("version", settings.app_version)
        return event_dict

    return add_context


def setup_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging with JSON or console rendering."""
    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _service_context(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def bind_user(user_id: str) -> None:
    """Attach the acting user to every log line emitted from this context."""
    structlog.contextvars.bind_contextvars(user_id=user_id)
