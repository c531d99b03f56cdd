"""
Domain Module: session orchestration.

Implements:
- Demo / live source switching (mutually exclusive)
- Routing of feed messages to the aggregator or the external fix
- On-demand history export
"""

from .tracking_session import (
    DEMO_INTERVAL_S,
    SourceMode,
    TrackingSession,
)

__all__ = [
    'DEMO_INTERVAL_S',
    'SourceMode',
    'TrackingSession',
]
