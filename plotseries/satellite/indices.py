"""
Spectral indices derived from canonical bands.

- NDVI: vegetation greenness
- EVI: vegetation, corrected for soil and atmosphere
- MSAVI: vegetation over bare soil
- NDMI: canopy moisture (nir vs swir1)
- NDRE: narrow NIR vs swir2 (falls back to broad NIR when the sensor lacks it)

Pixels where a formula divides by zero or takes the root of a negative come
out non-finite; extraction treats them exactly like masked pixels.
"""

from typing import Dict

import numpy as np

from plotseries.satellite.scene import Scene


def normalized_difference(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        return (a - b) / (a + b)


def evi(nir: np.ndarray, red: np.ndarray, blue: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        return 2.5 * ((nir - red) / (nir + 6 * red - 7.5 * blue + 1))


def msavi(nir: np.ndarray, red: np.ndarray) -> np.ndarray:
    with np.errstate(invalid="ignore"):
        return (2 * nir + 1 - np.sqrt((2 * nir + 1) ** 2 - 8 * (nir - red))) / 2


def compute_indices(bands: Dict[str, np.ndarray], auxiliary: Dict[str, np.ndarray] = None) -> Dict[str, np.ndarray]:
    auxiliary = auxiliary or {}
    nir = bands["nir"]
    red = bands["red"]
    nir_narrow = auxiliary.get("nir_narrow", nir)

    return {
        "ndvi": normalized_difference(nir, red),
        "evi": evi(nir, red, bands["blue"]),
        "msavi": msavi(nir, red),
        "ndmi": normalized_difference(nir, bands["swir1"]),
        "ndre": normalized_difference(nir_narrow, bands["swir2"]),
    }


def add_indices(scene: Scene) -> Scene:
    return scene.with_bands(compute_indices(scene.bands, scene.auxiliary))
