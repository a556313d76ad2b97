"""
Per-pixel quality masks.

Two policies, chosen by the sensor family:
- qa_bits (Landsat 5/7/8): low five QA_PIXEL bits clear (fill, dilated cloud,
  cirrus, cloud, cloud shadow) and no radiometric saturation.
- probability (Sentinel-2 L2A): cloud and snow probability below 5 and the
  scene classification is neither cloud shadow nor cirrus.
"""

import logging
from typing import Callable, Dict

import numpy as np

from plotseries.errors import SchemaMismatchError
from plotseries.satellite.scene import Scene

logger = logging.getLogger(__name__)

QA_PIXEL_FLAG_BITS = 0b11111
PROBABILITY_THRESHOLD = 5
SCL_CLOUD_SHADOW = 3
SCL_CIRRUS = 10


def qa_bits_mask(quality: Dict[str, np.ndarray]) -> np.ndarray:
    qa_pixel = quality["QA_PIXEL"].astype(np.int64)
    qa_ok = (qa_pixel & QA_PIXEL_FLAG_BITS) == 0
    saturation_ok = quality["QA_RADSAT"] == 0
    return qa_ok & saturation_ok


def probability_mask(quality: Dict[str, np.ndarray]) -> np.ndarray:
    cloud_ok = quality["MSK_CLDPRB"] < PROBABILITY_THRESHOLD
    snow_ok = quality["MSK_SNWPRB"] < PROBABILITY_THRESHOLD
    scl = quality["SCL"]
    return cloud_ok & snow_ok & (scl != SCL_CLOUD_SHADOW) & (scl != SCL_CIRRUS)


MASK_POLICIES: Dict[str, Callable[[Dict[str, np.ndarray]], np.ndarray]] = {
    "qa_bits": qa_bits_mask,
    "probability": probability_mask,
}

_POLICY_BANDS = {
    "qa_bits": ("QA_PIXEL", "QA_RADSAT"),
    "probability": ("MSK_CLDPRB", "MSK_SNWPRB", "SCL"),
}


def build_mask(policy: str, quality: Dict[str, np.ndarray]) -> np.ndarray:
    """Boolean mask, True where the pixel is usable."""
    if policy not in MASK_POLICIES:
        raise ValueError(f"Unknown mask policy: {policy}. Available: {list(MASK_POLICIES)}")
    return np.asarray(MASK_POLICIES[policy](quality), dtype=bool)


def apply_mask(scene: Scene, policy: str) -> Scene:
    """AND the policy mask into the scene's existing validity."""
    missing = [b for b in _POLICY_BANDS.get(policy, ()) if b not in scene.quality]
    if missing:
        raise SchemaMismatchError(scene.scene_id, scene.family, missing)
    mask = build_mask(policy, scene.quality)
    masked = scene.with_mask(mask)
    logger.debug(f"{scene.scene_id}: {int(masked.valid.sum())}/{masked.valid.size} pixels valid")
    return masked
