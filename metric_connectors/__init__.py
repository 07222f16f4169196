"""
Metric connectors: stateless data source connectors that derive time series
(moving averages, time shifts, histograms, filtered and multi-region series)
from a raw metric backend.
"""

__version__ = "0.1.0"
