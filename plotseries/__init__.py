"""
Per-plot satellite reflectance time series.

Harmonizes Landsat 5/7/8 and Sentinel-2 scenes to one band schema, masks
clouds, derives indices, and tabulates zonal means per plot as tall and wide
tables.
"""

from plotseries.config import PipelineConfig
from plotseries.core.pipeline import BandResult, run

__all__ = ['PipelineConfig', 'BandResult', 'run']
