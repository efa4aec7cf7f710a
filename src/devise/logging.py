"""Structured logging for the rate engine.

Every event carries ``service="devise"``. Values bound with
``structlog.contextvars`` inside a recompute task (edit generation, edited
field) are merged into each event logged by that task, so the log lines of
one edit can be followed across awaits.
"""

import logging

import structlog

SERVICE_NAME = "devise"

# Third-party loggers that are chatty at INFO: every HTTP request (httpx)
# and every SQL statement (aiosqlite).
_NOISY_LIBRARIES = ("httpx", "httpcore", "aiosqlite")


def _add_service(
    logger: structlog.types.WrappedLogger, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_renderer(log_format: str) -> structlog.types.Processor:
    """JSON lines for ``json``, colored key/value output for anything else."""
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog and stdlib logging through one formatter.

    Args:
        log_level: Root level name (``DEBUG``, ``INFO``, ...).
        log_format: ``json`` for machine-readable output, ``console`` otherwise.
                    Set through the LOG_FORMAT environment variable.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            build_renderer(log_format),
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
