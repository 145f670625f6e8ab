from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from .config import Settings

SERVICE_NAME = "onwater"
CLASSIFY_SPAN = "is_on_water"


def build_tracer_provider(settings: Settings) -> TracerProvider:
    # Kept local to the app; the global provider is left alone.
    provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    if settings.trace_console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider


def get_tracer(provider: TracerProvider) -> trace.Tracer:
    return provider.get_tracer(SERVICE_NAME)
