"""Logging setup.

Application modules log through the standard ``logging`` module; this module
installs a single root handler whose formatter is driven by structlog, so
records come out either as JSON lines or as console output depending on
``settings.log_format``. Values bound with ``structlog.contextvars`` (the
request id, for instance) are merged into every record.
"""

import logging

import structlog

from app.core.config import LogFormatEnum, Settings

_configured_handler: logging.Handler | None = None


def build_formatter(log_format: LogFormatEnum) -> structlog.stdlib.ProcessorFormatter:
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if log_format == LogFormatEnum.json:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def configure_logging(app_settings: Settings) -> None:
    """Install the root log handler. Safe to call more than once."""
    global _configured_handler

    root = logging.getLogger()
    if _configured_handler is not None:
        root.removeHandler(_configured_handler)

    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(app_settings.log_format))
    root.addHandler(handler)
    root.setLevel(app_settings.log_level.value)
    _configured_handler = handler

    # SQL echo goes through its own logger; keep it quiet unless debugging
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if app_settings.debug else logging.WARNING)
