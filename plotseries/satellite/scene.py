"""
Scene containers.

A RawScene is what the collection provider hands us: sensor-native band
names and raw digital counts. A Scene is the harmonized form that flows
through masking, index derivation and extraction.

All rasters of one scene share a single north-up pixel grid (GridSpec) in a
projected, metre-based CRS that regions are expressed in too.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import numpy as np
from shapely.geometry import Polygon, box


def naive_utc(timestamp: datetime) -> datetime:
    """Aware timestamps become naive UTC; naive ones are taken as UTC already."""
    if timestamp.tzinfo is None:
        return timestamp
    return timestamp.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class GridSpec:
    """North-up pixel grid: upper-left corner and square pixel size in metres."""
    x_min: float
    y_max: float
    pixel_size: float

    def bounds(self, shape: Tuple[int, int]) -> Tuple[float, float, float, float]:
        rows, cols = shape
        return (
            self.x_min,
            self.y_max - rows * self.pixel_size,
            self.x_min + cols * self.pixel_size,
            self.y_max,
        )

    def footprint(self, shape: Tuple[int, int]) -> Polygon:
        return box(*self.bounds(shape))

    def index(self, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Map coordinates to (row, col) pixel indices. May fall outside the raster."""
        col = np.floor((np.asarray(x) - self.x_min) / self.pixel_size).astype(int)
        row = np.floor((self.y_max - np.asarray(y)) / self.pixel_size).astype(int)
        return row, col


@dataclass(frozen=True)
class RawScene:
    """One acquisition as delivered by the store, before harmonization."""
    scene_id: str
    timestamp: datetime
    grid: GridSpec
    bands: Dict[str, np.ndarray]
    footprint: Optional[Polygon] = None

    def __post_init__(self):
        object.__setattr__(self, "timestamp", naive_utc(self.timestamp))

    @property
    def shape(self) -> Tuple[int, int]:
        return next(iter(self.bands.values())).shape

    def get_footprint(self) -> Polygon:
        return self.footprint if self.footprint is not None else self.grid.footprint(self.shape)

    def __str__(self):
        return f"RawScene({self.scene_id}, {self.timestamp:%Y-%m-%d %H:%M}, bands={sorted(self.bands)})"


@dataclass(frozen=True)
class Scene:
    """Harmonized acquisition.

    `bands` holds canonical bands (and derived indices) in physical units.
    `valid` is the per-pixel validity mask shared by every band; extraction
    additionally drops non-finite pixels. `quality` keeps the native quality
    bands for the mask builder, `auxiliary` keeps scaled bands outside the
    canonical set (thermal, narrow NIR).
    """
    scene_id: str
    timestamp: datetime
    family: str
    grid: GridSpec
    footprint: Polygon
    bands: Dict[str, np.ndarray]
    valid: np.ndarray
    quality: Dict[str, np.ndarray] = field(default_factory=dict)
    auxiliary: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "timestamp", naive_utc(self.timestamp))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.valid.shape

    @property
    def date(self) -> str:
        """Acquisition calendar day as YYYYMMDD."""
        return self.timestamp.strftime("%Y%m%d")

    @property
    def column_key(self) -> str:
        """Per-scene key used for wide-table columns.

        Always starts with the 8-character acquisition date so that same-day
        granules can be regrouped later.
        """
        if self.scene_id[:8] == self.date:
            return self.scene_id
        return f"{self.date}_{self.scene_id}"

    def with_bands(self, extra: Dict[str, np.ndarray]) -> "Scene":
        return replace(self, bands={**self.bands, **extra})

    def with_mask(self, mask: np.ndarray) -> "Scene":
        return replace(self, valid=self.valid & mask)

    def __str__(self):
        return f"Scene({self.scene_id}, {self.family}, {self.timestamp:%Y-%m-%d %H:%M})"
