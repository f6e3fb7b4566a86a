"""Shared test fixtures."""

from tests.fixtures.otel import get_counter_value

__all__ = ["get_counter_value"]
