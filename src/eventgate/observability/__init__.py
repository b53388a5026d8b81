"""Observability helpers for EventGate."""

from eventgate.observability.metrics import metrics

__all__ = ["metrics"]
