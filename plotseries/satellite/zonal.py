"""
Zonal statistics: mean band value per (scene, region).

Every (scene, region) pair yields exactly one Observation. When no valid
pixel falls inside the region (cloud, no footprint overlap, masked plot) the
observation carries no value; the NODATA sentinel is only written at export
time so downstream joins always see one row per region per scene.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import numpy as np
import shapely

from plotseries.satellite.regions import Region
from plotseries.satellite.scene import GridSpec, Scene

logger = logging.getLogger(__name__)

NODATA = -9999.0
# Physically plausible range of scaled surface reflectance.
VALID_REFLECTANCE_RANGE = (-0.2, 1.6)


@dataclass(frozen=True)
class Observation:
    region_id: str
    scene_id: str
    band: str
    value: Optional[float]
    timestamp: datetime
    column_key: str

    @property
    def is_nodata(self) -> bool:
        return self.value is None

    @property
    def date(self) -> str:
        return self.timestamp.strftime("%Y%m%d")

    def export_value(self) -> float:
        return NODATA if self.value is None else self.value


def sample_points(region: Region, grid: GridSpec, scale: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Centres of a `scale`-metre lattice anchored to the scene grid's origin
    that fall inside the region. With scale equal to the pixel size these are
    exactly the pixel centres under the plot. Plots too small to contain any
    centre are sampled at their representative point.
    """
    step = scale or grid.pixel_size
    x_min, y_min, x_max, y_max = region.geometry.bounds
    i = np.arange(np.ceil((x_min - grid.x_min) / step - 0.5), np.floor((x_max - grid.x_min) / step - 0.5) + 1)
    j = np.arange(np.ceil((grid.y_max - y_max) / step - 0.5), np.floor((grid.y_max - y_min) / step - 0.5) + 1)
    gx, gy = np.meshgrid(grid.x_min + (i + 0.5) * step, grid.y_max - (j + 0.5) * step)
    gx, gy = gx.ravel(), gy.ravel()

    inside = shapely.contains_xy(region.geometry, gx, gy)
    if not inside.any():
        p = region.geometry.representative_point()
        return np.array([p.x]), np.array([p.y])
    return gx[inside], gy[inside]


def zonal_mean(scene: Scene, band: str, points: Tuple[np.ndarray, np.ndarray]) -> Optional[float]:
    """Unweighted mean of the distinct valid, finite pixels under the sample points."""
    rows, cols = scene.grid.index(*points)
    n_rows, n_cols = scene.shape
    in_raster = (rows >= 0) & (rows < n_rows) & (cols >= 0) & (cols < n_cols)
    if not in_raster.any():
        return None

    pixels = np.unique(np.stack([rows[in_raster], cols[in_raster]], axis=1), axis=0)
    values = scene.bands[band][pixels[:, 0], pixels[:, 1]]
    usable = scene.valid[pixels[:, 0], pixels[:, 1]] & np.isfinite(values)
    if not usable.any():
        return None
    return float(values[usable].mean())


def _extract_scene(scene: Scene, regions: Sequence[Region], band: str, points_by_grid: dict) -> List[Observation]:
    region_points = points_by_grid[scene.grid]
    return [
        Observation(
            region_id=region.region_id,
            scene_id=scene.scene_id,
            band=band,
            value=zonal_mean(scene, band, points),
            timestamp=scene.timestamp,
            column_key=scene.column_key,
        )
        for region, points in zip(regions, region_points)
    ]


def extract_band(
    scenes: Sequence[Scene],
    regions: Sequence[Region],
    band: str,
    scale: Optional[float] = None,
    max_workers: Optional[int] = None
) -> List[Observation]:
    """
    One observation per (scene, region) for a single band.

    Args:
        scenes: Merged, masked scenes
        regions: Regions of interest
        band: Band or index name present on every scene
        scale: Sampling step in metres, anchored to each scene grid. None
            samples every pixel centre
        max_workers: Fan scenes out over a thread pool when > 1

    Returns:
        Observations in scene order, then region order
    """
    points_by_grid = {
        grid: [sample_points(r, grid, scale) for r in regions]
        for grid in {s.grid for s in scenes}
    }

    if max_workers and max_workers > 1 and len(scenes) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(scenes))) as executor:
            per_scene = list(executor.map(
                lambda s: _extract_scene(s, regions, band, points_by_grid), scenes
            ))
    else:
        per_scene = [_extract_scene(s, regions, band, points_by_grid) for s in scenes]

    observations = [obs for batch in per_scene for obs in batch]
    nodata = sum(1 for o in observations if o.is_nodata)
    logger.info(f"{band}: {len(observations)} observations ({nodata} without data) "
                f"from {len(scenes)} scenes x {len(regions)} regions")
    return observations
