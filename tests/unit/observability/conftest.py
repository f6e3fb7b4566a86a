"""
Fixtures for OpenTelemetry observability unit tests.

Provides in-memory span and metric exporters for verifying telemetry
without requiring an external collector.
"""

import pytest

from opentelemetry import trace, metrics, context as otel_context
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from backend.observability import config, tracing
from backend.observability.metrics import ConversationMetrics


def _reset_metric_singletons() -> None:
    ConversationMetrics._session_changes_total = None
    ConversationMetrics._store_operations_total = None
    ConversationMetrics._stale_responses_dropped_total = None


@pytest.fixture
def metric_reader(monkeypatch) -> InMemoryMetricReader:
    """InMemoryMetricReader whose meter provider backs ConversationMetrics."""
    reader = InMemoryMetricReader()
    provider = MeterProvider(metric_readers=[reader])

    # The global provider can only be set once per process
    monkeypatch.setattr(metrics, "get_meter", provider.get_meter)
    _reset_metric_singletons()

    yield reader

    _reset_metric_singletons()
    provider.shutdown()


@pytest.fixture
def active_span():
    """Provide an active span for testing."""
    tracer = trace.get_tracer("test")
    with tracer.start_as_current_span("test-span") as span:
        yield span


@pytest.fixture
def no_active_span():
    """Ensure no span is active (for negative tests)."""
    token = otel_context.attach(otel_context.Context())
    yield
    otel_context.detach(token)


@pytest.fixture
def reset_otel_state():
    """Reset global OTel state between tests."""
    original_initialized = config._initialized
    config._initialized = False

    yield

    config._initialized = original_initialized


@pytest.fixture
def span_exporter(monkeypatch) -> InMemorySpanExporter:
    """Route @traced spans to an in-memory exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    monkeypatch.setattr(
        tracing, "get_tracer", lambda name=None: provider.get_tracer(name or "test")
    )

    yield exporter

    exporter.clear()
