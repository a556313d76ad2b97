from datetime import datetime

import numpy as np
import pytest

from plotseries.satellite.regions import Region
from plotseries.satellite.scene import GridSpec, RawScene
from plotseries.satellite.sensors import get_family
from shapely.geometry import box

# 10 x 10 pixels of 30 m covering x, y in [0, 300]
GRID = GridSpec(x_min=0.0, y_max=300.0, pixel_size=30.0)
SHAPE = (10, 10)

REGION_BOXES = {
    "A": (30.0, 30.0, 90.0, 90.0),
    "B": (180.0, 180.0, 240.0, 240.0),
}


def landsat_dn(reflectance):
    """Inverse of the Landsat optical scaling."""
    return (np.asarray(reflectance, dtype=np.float64) + 0.2) / 2.75e-5


def pixel_slice(grid, bbox):
    x_min, y_min, x_max, y_max = bbox
    cols = slice(int((x_min - grid.x_min) / grid.pixel_size), int((x_max - grid.x_min) / grid.pixel_size))
    rows = slice(int((grid.y_max - y_max) / grid.pixel_size), int((grid.y_max - y_min) / grid.pixel_size))
    return rows, cols


@pytest.fixture
def regions():
    return [Region(region_id=rid, geometry=box(*b)) for rid, b in REGION_BOXES.items()]


@pytest.fixture
def make_landsat_raw():
    """
    Factory for Landsat 8 raw scenes.

    `values` maps region id -> reflectance for every optical band inside that
    region (None = cloud flagged there). Pixels outside regions get
    `background`.
    """
    family = get_family("landsat8")

    def _make(scene_id, timestamp, values=None, background=0.1, grid=GRID, drop=()):
        values = values or {}
        refl = np.full(SHAPE, background, dtype=np.float64)
        qa = np.zeros(SHAPE, dtype=np.uint16)
        for rid, v in values.items():
            rows, cols = pixel_slice(grid, REGION_BOXES[rid])
            if v is None:
                qa[rows, cols] = 0b1000  # cloud bit
            else:
                refl[rows, cols] = v
        bands = {native: landsat_dn(refl) for native in family.optical}
        bands["ST_B10"] = np.full(SHAPE, 44000.0)
        bands["QA_PIXEL"] = qa
        bands["QA_RADSAT"] = np.zeros(SHAPE, dtype=np.uint16)
        for name in drop:
            bands.pop(name)
        return RawScene(scene_id=scene_id, timestamp=timestamp, grid=grid, bands=bands)

    return _make


@pytest.fixture
def make_s2_raw():
    """Factory for Sentinel-2 raw scenes with per-band constant reflectance."""

    def _make(scene_id, timestamp, reflectance=None, cloud_prob=0, snow_prob=0, scl=4, grid=GRID):
        reflectance = reflectance or {}
        defaults = {"B2": 0.05, "B3": 0.08, "B4": 0.06, "B8": 0.35, "B8A": 0.33, "B11": 0.2, "B12": 0.1}
        defaults.update(reflectance)
        bands = {b: np.full(SHAPE, v * 10000.0) for b, v in defaults.items()}
        bands["MSK_CLDPRB"] = np.full(SHAPE, cloud_prob, dtype=np.uint8)
        bands["MSK_SNWPRB"] = np.full(SHAPE, snow_prob, dtype=np.uint8)
        bands["SCL"] = np.full(SHAPE, scl, dtype=np.uint8)
        return RawScene(scene_id=scene_id, timestamp=timestamp, grid=grid, bands=bands)

    return _make


@pytest.fixture
def granule_scenes(make_landsat_raw):
    """Two same-day granules and one later scene; region B clouded in the first."""
    return [
        make_landsat_raw("LC08_044034_20200105", datetime(2020, 1, 5, 10, 0, 0), {"A": 0.20, "B": None}),
        make_landsat_raw("LC08_044035_20200105", datetime(2020, 1, 5, 10, 0, 30), {"A": 0.25, "B": 0.18}),
        make_landsat_raw("LC08_044034_20200121", datetime(2020, 1, 21, 10, 0, 0), {"A": 0.40, "B": 0.22}),
    ]
