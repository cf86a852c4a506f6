# src/sannu/tracing.py

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    SimpleSpanProcessor,
    ConsoleSpanExporter,
)


def configure_tracing(service_name: str = "sannu-sannu") -> None:
    """
    Configure OpenTelemetry tracing with a console exporter.

    Spans are printed to stdout; swapping in an OTLP exporter later does not
    change callers, which only use `trace.get_tracer(__name__)`.
    """
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    # SimpleSpanProcessor exports synchronously; a batch worker thread can
    # write to stdout after pytest has closed its capture file.
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
