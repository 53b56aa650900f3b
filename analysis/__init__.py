"""
Analysis Engine Module

Turns raw daily monetary series into derived metric points:
- Windowed deltas (base money, reserves)
- Monetary aggregates and backing ratios
- FX volatility, trend and local pressure
- Data health (freshness, coverage, gaps)
"""

__version__ = "0.1.0"
