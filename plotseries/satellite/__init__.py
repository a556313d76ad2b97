"""
Satellite scene handling: sensor harmonization, quality masks, indices,
temporal merging and zonal extraction.
"""

from plotseries.satellite.regions import Region, regions_from_points
from plotseries.satellite.scene import GridSpec, RawScene, Scene
from plotseries.satellite.sensors import CANONICAL_BANDS, INDEX_BANDS, SENSOR_FAMILIES, get_family
from plotseries.satellite.zonal import NODATA, Observation

__all__ = [
    'Region', 'regions_from_points', 'GridSpec', 'RawScene', 'Scene',
    'CANONICAL_BANDS', 'INDEX_BANDS', 'SENSOR_FAMILIES', 'get_family',
    'NODATA', 'Observation',
]
