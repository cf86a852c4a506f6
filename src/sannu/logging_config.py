import logging
import sys
import os
from opentelemetry import trace


class TraceIdFilter(logging.Filter):
    """Logging filter that injects current OpenTelemetry trace and span ids
    into log records as `trace_id` and `span_id` fields.

    If no span is active, both fields are set to `-`.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = trace.get_current_span().get_span_context()
        if ctx is not None and ctx.is_valid:
            # 32/16-char hex, matching the OTel exporters
            record.trace_id = format(ctx.trace_id, "032x")
            record.span_id = format(ctx.span_id, "016x")
        else:
            record.trace_id = "-"
            record.span_id = "-"
        return True


class SafeFormatter(logging.Formatter):
    """Formatter that tolerates records which never passed TraceIdFilter."""

    def format(self, record):
        if not hasattr(record, "trace_id"):
            record.trace_id = "-"
        if not hasattr(record, "span_id"):
            record.span_id = "-"
        return super().format(record)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [trace=%(trace_id)s span=%(span_id)s] - %(message)s"


def configure_logging(extra_handlers=None):
    """
    Configure application-wide logging.

    Ensures trace_id/span_id always exist, even for records emitted before
    the tracing middleware runs or by third-party libraries.
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    handlers = [logging.StreamHandler(sys.stdout)]
    handlers.extend(extra_handlers or [])

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    for handler in handlers:
        handler.setFormatter(SafeFormatter(LOG_FORMAT))
        handler.addFilter(TraceIdFilter())
        root_logger.addHandler(handler)

    # Noise reduction
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
