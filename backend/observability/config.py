"""
OpenTelemetry SDK setup for the application context.

Spans go to the console in development and to an OTLP/HTTP collector when
``otel_exporter_otlp_endpoint`` is set; metrics are only exported to a
collector. Both providers are installed once per process.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanProcessor,
)

if TYPE_CHECKING:
    from backend.settings import Settings

logger = logging.getLogger(__name__)

SERVICE_VERSION_VALUE = "0.1.0"

_initialized = False


def configure_observability(settings: "Settings") -> None:
    """
    Install tracer and meter providers for this process.

    No-op when ``otel_enabled`` is false or when already configured. Setup
    failures are logged; telemetry never prevents the context from starting.
    """
    global _initialized

    if _initialized:
        logger.debug("OpenTelemetry already initialized, skipping")
        return
    if not settings.otel_enabled:
        logger.info("OpenTelemetry disabled via settings")
        return

    endpoint = settings.otel_exporter_otlp_endpoint
    try:
        resource = Resource.create({
            SERVICE_NAME: settings.otel_service_name,
            SERVICE_VERSION: SERVICE_VERSION_VALUE,
            "deployment.environment": settings.environment,
        })

        tracer_provider = TracerProvider(resource=resource)
        tracer_provider.add_span_processor(_span_processor(endpoint))
        trace.set_tracer_provider(tracer_provider)

        metrics.set_meter_provider(
            MeterProvider(
                resource=resource,
                metric_readers=_metric_readers(
                    endpoint, settings.otel_metrics_export_interval_ms
                ),
            )
        )

        _instrument_httpx()
    except Exception as e:
        logger.error("Failed to initialize OpenTelemetry: %s", e)
        return

    _initialized = True
    logger.info(
        "OpenTelemetry initialized: service=%s, endpoint=%s",
        settings.otel_service_name,
        endpoint or "console",
    )


def _collector_url(endpoint: str, signal: str) -> str:
    return endpoint.rstrip("/") + f"/v1/{signal}"


def _span_processor(endpoint: Optional[str]) -> SpanProcessor:
    if not endpoint:
        return SimpleSpanProcessor(ConsoleSpanExporter())

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    return BatchSpanProcessor(OTLPSpanExporter(endpoint=_collector_url(endpoint, "traces")))


def _metric_readers(endpoint: Optional[str], interval_ms: int) -> List[MetricReader]:
    if not endpoint:
        return []

    from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter

    return [
        PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=_collector_url(endpoint, "metrics")),
            export_interval_millis=interval_ms,
        )
    ]


def _instrument_httpx() -> None:
    """Chat API calls show up as client spans when the instrumentation is installed."""
    try:
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
    except ImportError:
        logger.debug("HTTPX instrumentation not available")
        return
    HTTPXClientInstrumentor().instrument()


def shutdown_observability() -> None:
    """Flush and shut down the providers installed by configure_observability()."""
    global _initialized

    if not _initialized:
        return
    _initialized = False

    for provider in (trace.get_tracer_provider(), metrics.get_meter_provider()):
        shutdown = getattr(provider, "shutdown", None)
        if shutdown is None:
            continue
        try:
            shutdown()
        except Exception as e:
            logger.error("Error during OpenTelemetry shutdown: %s", e)
    logger.info("OpenTelemetry shutdown complete")
