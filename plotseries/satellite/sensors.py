"""
Sensor families and band harmonization.

Each family knows its native band names, how to scale raw digital counts to
physical units, which quality bands drive its mask, and when the sensor was
operational. `harmonize` turns a RawScene into a Scene with the canonical
band set.

Usage:
    from plotseries.satellite.sensors import get_family, harmonize

    scene = harmonize(get_family("landsat8"), raw_scene)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from plotseries.errors import SchemaMismatchError
from plotseries.satellite.scene import RawScene, Scene

logger = logging.getLogger(__name__)


CANONICAL_BANDS = ("blue", "green", "red", "nir", "swir1", "swir2")
INDEX_BANDS = ("ndvi", "evi", "msavi", "ndmi", "ndre")

LANDSAT_OPTICAL_SCALE = 2.75e-5
LANDSAT_OPTICAL_OFFSET = -0.2
LANDSAT_THERMAL_SCALE = 3.41802e-3
LANDSAT_THERMAL_OFFSET = 149.0
SENTINEL2_OPTICAL_SCALE = 1e-4


@dataclass(frozen=True)
class SensorFamily:
    """Everything needed to harmonize and mask one sensor's scenes."""
    name: str
    dataset_id: str
    optical: Dict[str, str]  # native -> canonical
    mask_policy: str
    quality_bands: Tuple[str, ...]
    window: Tuple[datetime, Optional[datetime]]
    scale: float
    optical_scale: float
    optical_offset: float = 0.0
    thermal: Dict[str, str] = field(default_factory=dict)
    auxiliary: Dict[str, str] = field(default_factory=dict)

    def required_bands(self) -> List[str]:
        return list(self.optical) + list(self.quality_bands)

    def in_window(self, timestamp: datetime) -> bool:
        start, end = self.window
        if timestamp < start:
            return False
        return end is None or timestamp < end

    def __str__(self):
        start, end = self.window
        end_str = f"{end:%Y-%m-%d}" if end else "open"
        return f"{self.name} [{self.dataset_id}] {start:%Y-%m-%d} -> {end_str}, {self.scale:g} m"


_LANDSAT_QA = ("QA_PIXEL", "QA_RADSAT")
_L457_OPTICAL = dict(zip(["SR_B1", "SR_B2", "SR_B3", "SR_B4", "SR_B5", "SR_B7"], CANONICAL_BANDS))
_L8_OPTICAL = dict(zip(["SR_B2", "SR_B3", "SR_B4", "SR_B5", "SR_B6", "SR_B7"], CANONICAL_BANDS))

SENSOR_FAMILIES = {
    "landsat5": SensorFamily(
        name="landsat5",
        dataset_id="LANDSAT/LT05/C02/T1_L2",
        optical=_L457_OPTICAL,
        thermal={"ST_B6": "thermal"},
        mask_policy="qa_bits",
        quality_bands=_LANDSAT_QA,
        window=(datetime(1984, 3, 16), datetime(2012, 5, 5)),
        scale=30,
        optical_scale=LANDSAT_OPTICAL_SCALE,
        optical_offset=LANDSAT_OPTICAL_OFFSET,
    ),
    "landsat7": SensorFamily(
        name="landsat7",
        dataset_id="LANDSAT/LE07/C02/T1_L2",
        optical=_L457_OPTICAL,
        thermal={"ST_B6": "thermal"},
        mask_policy="qa_bits",
        quality_bands=_LANDSAT_QA,
        window=(datetime(1999, 5, 28), datetime(2023, 11, 11)),
        scale=30,
        optical_scale=LANDSAT_OPTICAL_SCALE,
        optical_offset=LANDSAT_OPTICAL_OFFSET,
    ),
    "landsat8": SensorFamily(
        name="landsat8",
        dataset_id="LANDSAT/LC08/C02/T1_L2",
        optical=_L8_OPTICAL,
        thermal={"ST_B10": "thermal"},
        mask_policy="qa_bits",
        quality_bands=_LANDSAT_QA,
        window=(datetime(2013, 3, 18), datetime(2023, 11, 27)),
        scale=30,
        optical_scale=LANDSAT_OPTICAL_SCALE,
        optical_offset=LANDSAT_OPTICAL_OFFSET,
    ),
    "sentinel2": SensorFamily(
        name="sentinel2",
        dataset_id="COPERNICUS/S2_SR",
        optical=dict(zip(["B2", "B3", "B4", "B8", "B11", "B12"], CANONICAL_BANDS)),
        auxiliary={"B8A": "nir_narrow"},
        mask_policy="probability",
        quality_bands=("MSK_CLDPRB", "MSK_SNWPRB", "SCL"),
        window=(datetime(2017, 3, 28), None),
        scale=10,
        optical_scale=SENTINEL2_OPTICAL_SCALE,
    ),
}


def get_family(name: str) -> SensorFamily:
    """Get sensor family by name."""
    if name not in SENSOR_FAMILIES:
        raise ValueError(f"Unknown sensor family: {name}. Available: {list(SENSOR_FAMILIES.keys())}")
    return SENSOR_FAMILIES[name]


def scale_optical(family: SensorFamily, raw: np.ndarray) -> np.ndarray:
    return raw.astype(np.float64) * family.optical_scale + family.optical_offset


def scale_thermal(raw: np.ndarray) -> np.ndarray:
    return raw.astype(np.float64) * LANDSAT_THERMAL_SCALE + LANDSAT_THERMAL_OFFSET


def harmonize(family: SensorFamily, raw: RawScene) -> Scene:
    """
    Rename native bands to the canonical set and rescale to physical units.

    Args:
        family: Sensor family the scene belongs to
        raw: Scene with native band names and raw digital counts

    Returns:
        Scene exposing exactly CANONICAL_BANDS. Thermal and auxiliary bands
        are scaled too but kept out of `bands`.

    Raises:
        SchemaMismatchError: a required optical or quality band is missing
    """
    missing = [b for b in family.required_bands() if b not in raw.bands]
    if missing:
        raise SchemaMismatchError(raw.scene_id, family.name, missing)

    bands = {
        canonical: scale_optical(family, raw.bands[native])
        for native, canonical in family.optical.items()
    }

    auxiliary = {}
    for native, name in family.thermal.items():
        if native in raw.bands:
            auxiliary[name] = scale_thermal(raw.bands[native])
    for native, name in family.auxiliary.items():
        if native in raw.bands:
            auxiliary[name] = scale_optical(family, raw.bands[native])

    valid = np.ones(raw.shape, dtype=bool)
    for values in bands.values():
        valid &= np.isfinite(values)

    return Scene(
        scene_id=raw.scene_id,
        timestamp=raw.timestamp,
        family=family.name,
        grid=raw.grid,
        footprint=raw.get_footprint(),
        bands=bands,
        valid=valid,
        quality={b: raw.bands[b] for b in family.quality_bands},
        auxiliary=auxiliary,
    )


def harmonize_collection(family: SensorFamily, raws: Iterable[RawScene]) -> List[Scene]:
    """Harmonize every scene, skipping (and logging) those with a schema mismatch."""
    scenes = []
    skipped = 0
    for raw in raws:
        try:
            scenes.append(harmonize(family, raw))
        except SchemaMismatchError as e:
            logger.warning(f"Skipping scene: {e}")
            skipped += 1
    logger.info(f"{family.name}: harmonized {len(scenes)} scenes, skipped {skipped}")
    return scenes
