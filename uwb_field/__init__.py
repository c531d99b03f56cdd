"""
UWB Field Tag Localization Core.

Four-anchor UWB positioning of a single tag in a small rectangular field,
with low-pass smoothing and live/demo reading sources.

Package structure:
- proto: Reading, estimate and history schemas; inbound row parsing
- localization: Anchor layout, position solver, aggregator/filter
- io: Live feed receiver, demo simulator, CSV export
- domain: Tracking session (source switching, message routing)
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
