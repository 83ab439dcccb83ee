"""
Data pipeline behind the JHEEM portal's plots

Aggregation of model output fragments, summaries for map hover cards
and chart-ready transformations.
"""

import importlib.metadata

__version__ = importlib.metadata.version("jheem-plot-data")
