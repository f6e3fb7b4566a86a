"""
OpenTelemetry observability for the session and conversation layers.

Provides tracing around every remote-facing operation and counters for
session changes and store outcomes.

Usage:
    from backend.observability import (
        configure_observability,
        traced,
        ConversationMetrics,
    )

    # Initialize once when the application context starts
    configure_observability(settings)

    @traced(name="conversations.load_chats")
    async def load_chats():
        ...

    ConversationMetrics.store_operations_total().add(
        1, {"operation": "load_chats", "status": "success"}
    )
"""

from backend.observability.config import configure_observability, shutdown_observability
from backend.observability.tracing import get_tracer, traced, add_span_attributes
from backend.observability.metrics import ConversationMetrics, record_operation

__all__ = [
    # Configuration
    "configure_observability",
    "shutdown_observability",
    # Tracing
    "get_tracer",
    "traced",
    "add_span_attributes",
    # Metrics
    "ConversationMetrics",
    "record_operation",
]
