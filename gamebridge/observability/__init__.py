"""
Observability module - Logging, Metrics, and Tracing.
"""

from gamebridge.observability.logging import get_logger, log_context, setup_logging
from gamebridge.observability.metrics import metrics
from gamebridge.observability.tracing import setup_tracing, trace_operation

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
    "trace_operation",
]
