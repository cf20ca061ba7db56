# chaoslinks/observability/logger.py

# structured JSON logging for the API process and the purge worker
import logging
import sys

from opentelemetry import trace
from pythonjsonlogger.json import JsonFormatter

from chaoslinks.utils.logger import ACCESS_LOGGER_NAME, ERROR_LOGGER_NAME

JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s %(pathname)s %(lineno)d %(trace_id)s"

# noisy at INFO under load
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "arq.worker")


class TraceIdFilter(logging.Filter):
    """Stamp trace_id on every record; None outside a span."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            ctx = trace.get_current_span().get_span_context()
            record.trace_id = f"{ctx.trace_id:032x}" if ctx.is_valid else None
        return True


def _build_formatter() -> logging.Formatter:
    return JsonFormatter(
        fmt=JSON_FIELDS,
        datefmt="%Y-%m-%dT%H:%M:%S%z",
        rename_fields={"levelname": "level", "name": "logger"},
    )


def configure_logging(config_module) -> None:
    """Switch every handler the service owns to JSON and add a stdout handler on root.

    Idempotent: the API and the worker both call it at startup, tests import
    the app repeatedly.
    """
    formatter = _build_formatter()
    trace_filter = TraceIdFilter()

    root = logging.getLogger()
    root.setLevel(config_module.LOG_LEVEL)

    # file loggers from chaoslinks.utils.logger keep their own files and levels
    for name in (ACCESS_LOGGER_NAME, ERROR_LOGGER_NAME):
        for handler in logging.getLogger(name).handlers:
            handler.setFormatter(formatter)
            if not any(isinstance(f, TraceIdFilter) for f in handler.filters):
                handler.addFilter(trace_filter)

    console = next((h for h in root.handlers if getattr(h, "name", None) == "chaoslinks-json"), None)
    if console is None:
        console = logging.StreamHandler(stream=sys.stdout)
        console.set_name("chaoslinks-json")
        console.setFormatter(formatter)
        console.addFilter(trace_filter)
        root.addHandler(console)

    if not config_module.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("logging configured", extra={"log_level": config_module.LOG_LEVEL})
