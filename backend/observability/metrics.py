"""
Metrics definitions for the session and conversation layers.

Defines all metrics using OpenTelemetry Meter API.
"""

import logging
from typing import Optional

from opentelemetry import metrics

logger = logging.getLogger(__name__)

_METER_NAME = "chat-frontend"


def _get_meter() -> metrics.Meter:
    """Get the metrics meter instance."""
    return metrics.get_meter(_METER_NAME)


class ConversationMetrics:
    """
    Centralized metrics.

    All metrics are lazily initialized on first access.
    """

    _session_changes_total: Optional[metrics.Counter] = None
    _store_operations_total: Optional[metrics.Counter] = None
    _stale_responses_dropped_total: Optional[metrics.Counter] = None

    @classmethod
    def session_changes_total(cls) -> metrics.Counter:
        """Counter for adopted session changes by source."""
        if cls._session_changes_total is None:
            cls._session_changes_total = _get_meter().create_counter(
                name="session_changes_total",
                description="Total number of adopted session changes",
                unit="1",
            )
        return cls._session_changes_total

    @classmethod
    def store_operations_total(cls) -> metrics.Counter:
        """Counter for conversation store operations by operation and status."""
        if cls._store_operations_total is None:
            cls._store_operations_total = _get_meter().create_counter(
                name="store_operations_total",
                description="Total number of conversation store operations",
                unit="1",
            )
        return cls._store_operations_total

    @classmethod
    def stale_responses_dropped_total(cls) -> metrics.Counter:
        """Counter for identity responses dropped because a newer call won."""
        if cls._stale_responses_dropped_total is None:
            cls._stale_responses_dropped_total = _get_meter().create_counter(
                name="stale_responses_dropped_total",
                description="Identity responses superseded by a newer request",
                unit="1",
            )
        return cls._stale_responses_dropped_total


def record_operation(operation: str, status: str) -> None:
    """Count one store operation outcome. Never raises."""
    try:
        ConversationMetrics.store_operations_total().add(
            1, {"operation": operation, "status": status}
        )
    except Exception:
        logger.debug("Metrics not available for %s", operation)
