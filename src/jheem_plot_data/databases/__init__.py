"""
Databases of information that is used throughout
"""

from __future__ import annotations

from jheem_plot_data.databases.geographies import CITIES, STATES

__all__ = ["CITIES", "STATES"]
