from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor, ConsoleSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

_initialized = False


def init_otel(app=None, engine=None, service_name: str = "chaoslinks"):
    """Initialize OpenTelemetry tracing with console exporter.

    Pass FastAPI app and SQLAlchemy async engine to instrument automatically.
    Safe to call more than once; only the first call installs the provider.
    """
    global _initialized
    if not _initialized:
        resource = Resource.create({"service.name": service_name})
        provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(provider)
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        if app is not None:
            FastAPIInstrumentor.instrument_app(app)

        if engine is not None:
            SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

        _initialized = True

    return trace.get_tracer(service_name)
