"""Structured logging setup.

structlog is bridged onto stdlib logging so uvicorn, SQLAlchemy and
application loggers share one handler and one renderer:
- JSON lines in production
- ConsoleRenderer when debug is on
- request correlation id attached to every entry
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id


def add_correlation_id(logger, method, event_dict):
    """Attach the X-Request-ID of the current request, if any."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def add_service_name(service: str):
    def processor(logger, method, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_structlog(
    log_level: str = "INFO",
    json_logs: bool = True,
    service: str = "devflow",
) -> None:
    """Configure structlog and the stdlib root logger.

    Must run before modules call structlog.get_logger() for the first time,
    since loggers cache their processor chain on first use.

    Args:
        log_level: Root log level name
        json_logs: JSON output when True, human-readable console output otherwise
        service: Value of the ``service`` field on every entry
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        add_service_name(service),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    formatter_processors = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if json_logs:
        # ConsoleRenderer formats tracebacks itself
        formatter_processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        formatter_processors.append(structlog.dev.ConsoleRenderer())

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": formatter_processors,
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": log_level},
        "loggers": {
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
