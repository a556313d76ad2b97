import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from plotseries.satellite.collection import SceneCollection
from plotseries.satellite.regions import Region
from plotseries.satellite.sensors import SensorFamily

logger = logging.getLogger(__name__)

Window = Tuple[Optional[datetime], Optional[datetime]]


def effective_window(family: SensorFamily, run_window: Window = (None, None), override: Window = None) -> Window:
    """Intersect the family's operational window with the run window."""
    start, end = override if override is not None else family.window
    run_start, run_end = run_window
    if run_start is not None and (start is None or run_start > start):
        start = run_start
    if run_end is not None and (end is None or run_end < end):
        end = run_end
    return start, end


def merge_families(
    collections: Dict[str, SceneCollection],
    families: Dict[str, SensorFamily],
    regions: List[Region],
    run_window: Window = (None, None),
    window_overrides: Dict[str, Window] = None
) -> SceneCollection:
    """
    Filter each family's corrected collection to its operational window and to
    the regions, then concatenate into one collection ordered by acquisition
    time.

    Args:
        collections: family name -> harmonized, masked scenes
        families: family name -> SensorFamily
        regions: Regions of interest
        run_window: Optional (start, end) applied on top of every family window
        window_overrides: Per-family replacement for the operational window

    Returns:
        Merged SceneCollection sorted by (timestamp, scene_id)
    """
    window_overrides = window_overrides or {}
    merged = SceneCollection()
    for name, collection in collections.items():
        start, end = effective_window(families[name], run_window, window_overrides.get(name))
        if start is not None and end is not None and start >= end:
            logger.info(f"{name}: empty window {start} -> {end}")
            continue
        kept = collection.filter_date(start, end).filter_bounds(regions)
        logger.info(f"{name}: {len(kept)}/{len(collection)} scenes in window and bounds")
        merged = merged.merge(kept)
    return merged.sort()
