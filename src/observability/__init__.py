"""
Observability module for tracing, logging, and metrics
"""
from src.observability.logging import get_logger, setup_logging
from src.observability.metrics import MetricsCollector, get_metrics_collector
from src.observability.tracing import RequestContext, track_operation

__all__ = [
    "get_logger",
    "setup_logging",
    "MetricsCollector",
    "get_metrics_collector",
    "RequestContext",
    "track_operation",
]
