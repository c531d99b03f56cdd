"""
Metrics Module: Diagnostics, counters, histograms.

Usage:
    from uwb_field.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('readings_in')
    metrics.increment_drop('insufficient_anchors')
    metrics.record_histogram('position_error_cm', 1.23)
"""

from .counters import MetricsCollector, CounterSnapshot

# Global singleton for easy access
_global_metrics = None


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'CounterSnapshot', 'get_metrics', 'reset_metrics']
